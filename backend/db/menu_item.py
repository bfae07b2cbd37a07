import uuid
from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from .database import Base


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)

    variants = relationship("MenuItemVariant", back_populates="menu_item", cascade="all, delete-orphan")


class MenuItemVariant(Base):
    """A sellable variation of a menu item (size, milk type, ...)."""
    __tablename__ = "menu_item_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    menu_item_id = Column(Uuid, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)

    menu_item = relationship("MenuItem", back_populates="variants")
