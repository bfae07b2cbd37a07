import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from .database import Base


class Order(Base):
    """Sales order. Owned by order processing; the ledger only reads it and flips the refund flag."""
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    branch_id = Column(Uuid, ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False, index=True)
    order_number = Column(String, nullable=False, index=True)
    total_amount = Column(Numeric(14, 2), nullable=True)

    is_refunded = Column(Boolean, nullable=False, default=False)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refunded_by = Column(Uuid, nullable=True)

    created_by = Column(Uuid, nullable=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_item_id = Column(Uuid, ForeignKey("menu_items.id", ondelete="RESTRICT"), nullable=False, index=True)
    menu_item_variant_id = Column(
        Uuid, ForeignKey("menu_item_variants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quantity = Column(Integer, nullable=False, default=1)

    order = relationship("Order", back_populates="items")
