import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.cache import Cache, NullCache
from db.branch import Branch
from db.ingredient import Ingredient
from .errors import NotFoundError
from .types import IngredientInfo

logger = logging.getLogger(__name__)

ALL_INGREDIENTS_KEY = "ingredients:all"


def _ingredient_key(ingredient_id: UUID) -> str:
    return f"ingredient:{ingredient_id}"


def _to_info(model: Ingredient) -> IngredientInfo:
    return IngredientInfo(
        id=model.id,
        name=model.name,
        unit=model.unit,
        cost_per_unit=Decimal(str(model.cost_per_unit or 0)),
        reorder_threshold=Decimal(str(model.reorder_threshold or 0)),
    )


class IngredientCatalog:
    """Read-only view of ingredient reference data, served through an injected cache."""

    def __init__(self, cache: Optional[Cache] = None):
        self.cache = cache if cache is not None else NullCache()

    async def get(self, db: AsyncSession, ingredient_id: UUID, fresh: bool = False) -> Optional[IngredientInfo]:
        """With fresh=True the cache is skipped for the read and refreshed from the row."""
        key = _ingredient_key(ingredient_id)
        if not fresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        model = (
            await db.execute(select(Ingredient).where(Ingredient.id == ingredient_id))
        ).scalar_one_or_none()
        if model is None:
            self.cache.invalidate(key)
            return None
        info = _to_info(model)
        self.cache.set(key, info)
        return info

    async def require(self, db: AsyncSession, ingredient_id: UUID, fresh: bool = False) -> IngredientInfo:
        info = await self.get(db, ingredient_id, fresh=fresh)
        if info is None:
            raise NotFoundError(f"Ingredient {ingredient_id} not found")
        return info

    async def list_all(self, db: AsyncSession) -> List[IngredientInfo]:
        cached = self.cache.get(ALL_INGREDIENTS_KEY)
        if cached is not None:
            return cached
        res = await db.execute(select(Ingredient).order_by(func.lower(Ingredient.name).asc()))
        infos = [_to_info(m) for m in res.scalars().all()]
        self.cache.set(ALL_INGREDIENTS_KEY, infos)
        for info in infos:
            self.cache.set(_ingredient_key(info.id), info)
        return infos

    def invalidate(self, ingredient_id: Optional[UUID] = None) -> None:
        if ingredient_id is None:
            self.cache.invalidate()
            return
        self.cache.invalidate(_ingredient_key(ingredient_id))
        self.cache.invalidate(ALL_INGREDIENTS_KEY)


async def require_branch(db: AsyncSession, branch_id: UUID) -> Branch:
    branch = (await db.execute(select(Branch).where(Branch.id == branch_id))).scalar_one_or_none()
    if branch is None:
        raise NotFoundError(f"Branch {branch_id} not found")
    return branch
