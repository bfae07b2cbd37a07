import uuid
from sqlalchemy import Column, Numeric, String, Uuid

from .database import Base


class Ingredient(Base):
    """Raw ingredient, global across branches. Edited by catalog management only."""
    __tablename__ = "ingredients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    unit = Column(String, nullable=False)  # 'g', 'kg', 'ml', 'l', 'pcs', ...
    cost_per_unit = Column(Numeric(14, 4), nullable=False, default=0)
    reorder_threshold = Column(Numeric(14, 4), nullable=False, default=0)
