import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base

TRANSACTION_TYPES = ("SALE", "RESTOCK", "WASTE", "REFUND", "ADJUSTMENT")


class InventoryTransaction(Base):
    """Immutable ledger row. stock_after == stock_before + quantity_change."""
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('SALE', 'RESTOCK', 'WASTE', 'REFUND', 'ADJUSTMENT')",
            name="ck_inventory_transactions_type",
        ),
        UniqueConstraint("branch_id", "ingredient_id", "sequence", name="uq_inventory_transactions_chain"),
        Index("ix_inventory_transactions_branch_ingredient_created", "branch_id", "ingredient_id", "created_at"),
        Index("ix_inventory_transactions_branch_created", "branch_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    branch_id = Column(Uuid, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False)
    ingredient_id = Column(Uuid, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False)

    transaction_type = Column(Text, nullable=False)
    quantity_change = Column(Numeric(14, 4), nullable=False)  # positive = stock increase
    stock_before = Column(Numeric(14, 4), nullable=False)
    stock_after = Column(Numeric(14, 4), nullable=False)
    sequence = Column(Integer, nullable=False)  # BranchInventory.version after this row

    # ledger rows are append-only; an order with stock history cannot be deleted
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True, index=True)
    reason = Column(Text, nullable=True)

    created_by = Column(Uuid, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    ingredient = relationship("Ingredient")
