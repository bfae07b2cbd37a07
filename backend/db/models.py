"""Import every model so Base.metadata knows all tables."""

from .branch import Branch
from .ingredient import Ingredient
from .menu_item import MenuItem, MenuItemVariant
from .recipe import Recipe
from .order import Order, OrderItem
from .inventory import BranchInventory, InventoryTransaction

__all__ = [
    "Branch",
    "Ingredient",
    "MenuItem",
    "MenuItemVariant",
    "Recipe",
    "Order",
    "OrderItem",
    "BranchInventory",
    "InventoryTransaction",
]
