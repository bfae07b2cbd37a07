import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class BranchInventory(Base):
    __tablename__ = "branch_inventory"
    __table_args__ = (
        UniqueConstraint("branch_id", "ingredient_id", name="ux_branch_inventory_branch_ingredient"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    branch_id = Column(Uuid, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True)
    ingredient_id = Column(Uuid, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False, index=True)

    # No floor: waste or sales beyond recorded stock leave this negative.
    current_stock = Column(Numeric(14, 4), nullable=False, default=0)
    # Bumped on every mutation; copied to InventoryTransaction.sequence.
    version = Column(Integer, nullable=False, default=0)

    last_restock_at = Column(DateTime(timezone=True), nullable=True)
    last_modified_at = Column(DateTime(timezone=True), nullable=False)

    ingredient = relationship("Ingredient")
    branch = relationship("Branch")
