from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from marketplace.data.database import Base
from marketplace.domain.constants import CANCELLABLE_STATUSES


def _utcnow():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)

    # kody nadawane raz, przy pierwszym zapisie (before_flush)
    order_number = Column(String(40), nullable=False, unique=True)
    client_code = Column(String(12), nullable=False, index=True)
    delivery_code = Column(String(12), nullable=False, unique=True)

    # id z zewnetrznej tozsamosci (gateway), bez FK
    user_id = Column(Integer, nullable=False, index=True)
    vendor_id = Column(Integer, nullable=True, index=True)
    livreur_id = Column(Integer, nullable=True, index=True)  # user_id kuriera

    status = Column(String(30), nullable=False, default="pending", index=True)
    version = Column(Integer, nullable=False, default=1)

    # adres dostawy (snapshot)
    recipient_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    street = Column(String, nullable=False)
    city = Column(String, nullable=False, index=True)
    postal_code = Column(String, nullable=False)
    country = Column(String, nullable=False, default="Tunisie")
    instructions = Column(Text, nullable=True)

    # kwoty - subtotal i total sa zawsze przeliczane
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)

    payment_method = Column(String(30), nullable=False, default="cash_on_delivery")
    payment_status = Column(String(20), nullable=False, default="pending")

    # wysylka
    carrier = Column(String, nullable=True)
    tracking_number = Column(String, nullable=True)
    tracking_url = Column(String, nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)
    delivery_attempts = Column(Integer, nullable=False, default=0)

    assigned_to_livreur_at = Column(DateTime(timezone=True), nullable=True)
    picked_up_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    delivery_proof = Column(JSON, nullable=True)  # tylko przy delivered
    refusal_info = Column(JSON, nullable=True)  # tylko przy refused

    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    refund_status = Column(String(20), nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=True)

    customer_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    status_history = relationship(
        "OrderStatusHistoryModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistoryModel.id",
    )

    def can_be_cancelled(self) -> bool:
        return self.status in CANCELLABLE_STATUSES
