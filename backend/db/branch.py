import uuid
from sqlalchemy import Boolean, Column, String, Uuid

from .database import Base


class Branch(Base):
    """One physical retail location. All stock is branch-scoped."""
    __tablename__ = "branches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
