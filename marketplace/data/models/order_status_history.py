from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Text
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class OrderStatusHistoryModel(Base):
    """Wpis historii statusu - tylko dopisywany, nigdy nie zmieniany."""
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(30), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    note = Column(Text, nullable=True)
    updated_by = Column(Integer, nullable=True)

    order = relationship("OrderModel", back_populates="status_history")
