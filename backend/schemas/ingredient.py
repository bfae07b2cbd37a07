from pydantic import BaseModel
from uuid import UUID


class IngredientRead(BaseModel):
    id: UUID
    name: str
    unit: str
    cost_per_unit: float
    reorder_threshold: float
