from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from core.deps import get_catalog
from db.database import get_async_session
from ledger.catalog import IngredientCatalog
from ledger.types import IngredientInfo
from schemas.ingredient import IngredientRead

router = APIRouter()


def _read(info: IngredientInfo) -> IngredientRead:
    return IngredientRead(
        id=info.id,
        name=info.name,
        unit=info.unit,
        cost_per_unit=float(info.cost_per_unit),
        reorder_threshold=float(info.reorder_threshold),
    )


@router.get("/", response_model=List[IngredientRead])
async def get_ingredients(
    db: AsyncSession = Depends(get_async_session),
    catalog: IngredientCatalog = Depends(get_catalog),
):
    """Get all ingredients"""
    return [_read(info) for info in await catalog.list_all(db)]


@router.get("/{ingredient_id}", response_model=IngredientRead)
async def get_ingredient(
    ingredient_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    catalog: IngredientCatalog = Depends(get_catalog),
):
    """Get an ingredient by ID"""
    info = await catalog.get(db, ingredient_id)
    if not info:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Ingredient with id {ingredient_id} not found"
        )
    return _read(info)
