from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from ledger.recipes import RecipeResolver
from schemas.recipes import RecipeResolution, ResolvedIngredient

router = APIRouter()


@router.get("/resolve", response_model=RecipeResolution)
async def resolve_recipe(
    menu_item_id: UUID,
    variant_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """Preview what one sold unit of a menu item (and variant) takes from stock."""
    pairs = await RecipeResolver(db).resolve(menu_item_id, variant_id)
    return RecipeResolution(
        menu_item_id=menu_item_id,
        menu_item_variant_id=variant_id,
        ingredients=[
            ResolvedIngredient(ingredient_id=ing, quantity_per_unit=float(qty)) for ing, qty in pairs
        ],
    )
