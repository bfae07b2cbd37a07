from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID


class ResolvedIngredient(BaseModel):
    ingredient_id: UUID
    quantity_per_unit: float


class RecipeResolution(BaseModel):
    menu_item_id: UUID
    menu_item_variant_id: Optional[UUID] = None
    ingredients: List[ResolvedIngredient]
