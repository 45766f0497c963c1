from sqlalchemy import Column, Integer, ForeignKey, String, Boolean, Float, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from marketplace.data.database import Base
from marketplace.domain.constants import LivreurStatus


class LivreurModel(Base):
    __tablename__ = "livreurs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    vehicle_type = Column(String(20), nullable=False, default="moto")
    zone = Column(String, nullable=False, index=True)
    additional_zones = Column(JSON, nullable=False, default=list)

    is_available = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    max_orders_at_once = Column(Integer, nullable=False, default=5)
    version = Column(Integer, nullable=False, default=1)

    # statystyki - zapisuje je tylko record_delivery()
    total_deliveries = Column(Integer, nullable=False, default=0)
    successful_deliveries = Column(Integer, nullable=False, default=0)
    failed_deliveries = Column(Integer, nullable=False, default=0)
    average_delivery_time = Column(Float, nullable=False, default=0.0)  # minuty
    rating = Column(Float, nullable=False, default=5.0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    user = relationship("UserModel")
    current_orders = relationship(
        "LivreurCurrentOrderModel",
        back_populates="livreur",
        cascade="all, delete-orphan",
    )

    @property
    def current_order_ids(self) -> list[int]:
        return [c.order_id for c in self.current_orders]

    @property
    def success_rate(self) -> int:
        # nowy kurier bez dostaw nie jest karany
        if not self.total_deliveries:
            return 100
        return round(self.successful_deliveries / self.total_deliveries * 100)

    def serves_zone(self, term: str) -> bool:
        """Dopasowanie strefy: podciag, bez rozrozniania wielkosci liter."""
        term = (term or "").strip().lower()
        if not term:
            return False
        zones = [self.zone or ""] + list(self.additional_zones or [])
        return any(term in z.lower() for z in zones)

    def can_accept_order(self) -> bool:
        return (
            bool(self.is_available)
            and self.status == LivreurStatus.APPROVED.value
            and len(self.current_orders) < self.max_orders_at_once
        )

    def record_delivery(self, success: bool, delivery_time_minutes: float = 0) -> None:
        """Jedyne miejsce, ktore zmienia statystyki kuriera."""
        self.total_deliveries += 1

        if success:
            self.successful_deliveries += 1
            #srednia przyrostowa - bez trzymania calej historii czasow
            total_time = self.average_delivery_time * (self.successful_deliveries - 1) + delivery_time_minutes
            self.average_delivery_time = total_time / self.successful_deliveries
        else:
            self.failed_deliveries += 1


class LivreurCurrentOrderModel(Base):
    """Zamowienie przypisane kurierowi i jeszcze nie zakonczone.

    order_id jest unikalne - zamowienie moze siedziec tylko u jednego kuriera.
    """
    __tablename__ = "livreur_current_orders"

    id = Column(Integer, primary_key=True)
    livreur_id = Column(Integer, ForeignKey("livreurs.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True)

    livreur = relationship("LivreurModel", back_populates="current_orders")
