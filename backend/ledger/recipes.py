"""
Recipe resolution: which ingredients, and how much of each, one sold unit consumes.

A variant-specific row replaces the base row (menu_item_variant_id = NULL) for the
same ingredient; ingredients the variant does not mention fall back to the base row.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.ingredient import Ingredient
from db.recipe import Recipe
from .types import LineResolution, OrderLine
from .units import convert, quantize

logger = logging.getLogger(__name__)


def select_recipe_rows(rows: Iterable, variant_id: Optional[UUID]) -> List:
    """
    Pick the effective row per ingredient from all recipe rows of one menu item.

    `rows` only needs `ingredient_id` and `menu_item_variant_id` attributes.
    """
    base: Dict[UUID, object] = {}
    override: Dict[UUID, object] = {}
    for row in rows:
        row_variant = row.menu_item_variant_id
        if row_variant is None:
            base[row.ingredient_id] = row
        elif variant_id is not None and row_variant == variant_id:
            override[row.ingredient_id] = row

    effective = dict(base)
    effective.update(override)
    return [effective[k] for k in sorted(effective, key=str)]


class RecipeResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_rows(self, menu_item_id: UUID, variant_id: Optional[UUID]) -> Sequence:
        stmt = (
            select(Recipe, Ingredient.unit.label("ingredient_unit"))
            .join(Ingredient, Recipe.ingredient_id == Ingredient.id)
            .where(Recipe.menu_item_id == menu_item_id)
        )
        if variant_id is None:
            stmt = stmt.where(Recipe.menu_item_variant_id.is_(None))
        else:
            stmt = stmt.where(
                or_(Recipe.menu_item_variant_id.is_(None), Recipe.menu_item_variant_id == variant_id)
            )
        res = await self.db.execute(stmt)
        return res.all()

    async def resolve(
        self, menu_item_id: UUID, variant_id: Optional[UUID] = None
    ) -> List[Tuple[UUID, Decimal]]:
        """Return (ingredient_id, quantity per sold unit) in the ingredient's own unit."""
        rows = await self._load_rows(menu_item_id, variant_id)
        units = {recipe.id: ingredient_unit for (recipe, ingredient_unit) in rows}
        chosen = select_recipe_rows([recipe for (recipe, _unit) in rows], variant_id)

        out: List[Tuple[UUID, Decimal]] = []
        for recipe in chosen:
            qty = Decimal(str(recipe.quantity_required))
            target_unit = units.get(recipe.id)
            converted = convert(qty, recipe.unit, target_unit)
            if converted is None:
                logger.warning(
                    "Recipe %s uses unit '%s' which cannot be converted to ingredient unit '%s'; "
                    "using the quantity as-is",
                    recipe.id, recipe.unit, target_unit,
                )
                converted = qty
            out.append((recipe.ingredient_id, quantize(converted)))
        return out

    async def resolve_lines(self, lines: Iterable[OrderLine]) -> LineResolution:
        """Resolve every line and sum quantity * sold units per ingredient."""
        resolution = LineResolution()
        cache: Dict[Tuple[UUID, Optional[UUID]], List[Tuple[UUID, Decimal]]] = {}
        for line in lines:
            key = (line.menu_item_id, line.menu_item_variant_id)
            if key not in cache:
                cache[key] = await self.resolve(line.menu_item_id, line.menu_item_variant_id)
            pairs = cache[key]
            if not pairs:
                logger.warning(
                    "No recipe for menu item %s (variant %s); line has no stock effect",
                    line.menu_item_id, line.menu_item_variant_id,
                )
                resolution.missing.append(line)
                continue
            for ingredient_id, per_unit in pairs:
                total = resolution.totals.get(ingredient_id, Decimal("0"))
                resolution.totals[ingredient_id] = quantize(total + per_unit * line.quantity)
        return resolution
