from sqlalchemy import Column, Integer, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    vendor_id = Column(Integer, nullable=True)

    title = Column(String, nullable=True)  # snapshot tytulu
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    discount = Column(Numeric(5, 2), nullable=False, default=0)  # procent
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)

    order = relationship("OrderModel", back_populates="items")
