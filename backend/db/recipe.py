import uuid
from sqlalchemy import Column, ForeignKey, Index, Numeric, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship

from .database import Base


class Recipe(Base):
    """
    Ingredient consumption for one unit of a menu item.

    Rows with menu_item_variant_id = NULL are the base recipe; a row for a variant
    overrides the base row of the same ingredient when that variant is sold.
    """
    __tablename__ = "recipes"
    __table_args__ = (
        UniqueConstraint(
            "menu_item_id", "ingredient_id", "menu_item_variant_id",
            name="ux_recipes_item_ingredient_variant",
        ),
        # NULLs are distinct in the constraint above, so base rows need their own index
        Index(
            "ux_recipes_item_ingredient_base",
            "menu_item_id", "ingredient_id",
            unique=True,
            postgresql_where=text("menu_item_variant_id IS NULL"),
            sqlite_where=text("menu_item_variant_id IS NULL"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    menu_item_id = Column(Uuid, ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True)
    ingredient_id = Column(Uuid, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False, index=True)
    menu_item_variant_id = Column(
        Uuid, ForeignKey("menu_item_variants.id", ondelete="CASCADE"), nullable=True, index=True
    )

    quantity_required = Column(Numeric(14, 4), nullable=False)
    unit = Column(String, nullable=False)

    ingredient = relationship("Ingredient")
    menu_item = relationship("MenuItem")
    variant = relationship("MenuItemVariant")
