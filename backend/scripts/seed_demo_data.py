import asyncio
import sys
import uuid
from pathlib import Path
from decimal import Decimal

"""
Seed demo data (branches, ingredients, menu items, recipes, opening stock) into the DB.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Opening stock is written through the ledger as RESTOCK rows, so the transaction
log replays to the seeded quantities.
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from core.config import settings
from core.logging import configure_logging
from db.database import async_session_maker, create_db_and_tables
from db.branch import Branch
from db.ingredient import Ingredient
from db.menu_item import MenuItem, MenuItemVariant
from db.recipe import Recipe
from ledger.catalog import IngredientCatalog
from ledger.stock import StockLedger

# Recorded as created_by on the opening RESTOCK rows
SEED_ACTOR_ID = uuid.UUID("00000000-0000-0000-0000-000000005eed")

INGREDIENTS = [
    # name, unit, cost_per_unit, reorder_threshold, opening stock
    ("coffee beans", "g", Decimal("0.0400"), Decimal("500"), Decimal("2000")),
    ("milk", "ml", Decimal("0.0012"), Decimal("2000"), Decimal("10000")),
    ("sugar", "g", Decimal("0.0020"), Decimal("300"), Decimal("1500")),
    ("chocolate syrup", "ml", Decimal("0.0100"), Decimal("200"), Decimal("150")),
    ("flour", "g", Decimal("0.0015"), Decimal("1000"), Decimal("5000")),
    ("butter", "g", Decimal("0.0090"), Decimal("500"), Decimal("800")),
]

MENU = [
    {
        "name": "Espresso",
        "recipe": [("coffee beans", "18", "g")],
        "variants": {"Double": [("coffee beans", "36", "g")]},
    },
    {
        "name": "Latte",
        "recipe": [("milk", "200", "ml"), ("coffee beans", "18", "g")],
        "variants": {
            "Large": [("milk", "300", "ml")],
            "Extra Shot": [("coffee beans", "36", "g")],
        },
    },
    {
        "name": "Mocha",
        "recipe": [("milk", "180", "ml"), ("coffee beans", "18", "g"), ("chocolate syrup", "20", "ml")],
        "variants": {},
    },
    {
        "name": "Croissant",
        "recipe": [("flour", "0.06", "kg"), ("butter", "30", "g")],
        "variants": {},
    },
]


async def get_or_create_branch(session, name: str) -> Branch:
    result = await session.execute(select(Branch).where(func.lower(Branch.name) == name.strip().lower()))
    branch = result.scalar_one_or_none()
    if branch:
        return branch

    branch = Branch(name=name.strip(), is_active=True)
    session.add(branch)
    await session.flush()
    return branch


async def get_or_create_ingredient(session, name: str, unit: str, cost: Decimal, threshold: Decimal) -> Ingredient:
    result = await session.execute(
        select(Ingredient).where(func.lower(Ingredient.name) == name.strip().lower())
    )
    ingredient = result.scalar_one_or_none()
    if ingredient:
        # Keep reference values up-to-date if you re-run seed with new values
        ingredient.cost_per_unit = cost
        ingredient.reorder_threshold = threshold
        await session.flush()
        return ingredient

    ingredient = Ingredient(name=name.strip(), unit=unit, cost_per_unit=cost, reorder_threshold=threshold)
    session.add(ingredient)
    await session.flush()
    return ingredient


async def upsert_menu_item(session, entry: dict, ingredients: dict) -> MenuItem:
    result = await session.execute(select(MenuItem).where(MenuItem.name == entry["name"]))
    item = result.scalar_one_or_none()
    if item is None:
        item = MenuItem(name=entry["name"])
        session.add(item)
        await session.flush()

    async def put_recipe_row(ingredient_name: str, qty: str, unit: str, variant_id=None):
        ing = ingredients[ingredient_name]
        stmt = select(Recipe).where(
            Recipe.menu_item_id == item.id,
            Recipe.ingredient_id == ing.id,
        )
        if variant_id is None:
            stmt = stmt.where(Recipe.menu_item_variant_id.is_(None))
        else:
            stmt = stmt.where(Recipe.menu_item_variant_id == variant_id)
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            row = Recipe(menu_item_id=item.id, ingredient_id=ing.id, menu_item_variant_id=variant_id)
            session.add(row)
        row.quantity_required = Decimal(qty)
        row.unit = unit

    for (name, qty, unit) in entry["recipe"]:
        await put_recipe_row(name, qty, unit)

    for variant_name, rows in entry["variants"].items():
        result = await session.execute(
            select(MenuItemVariant).where(
                MenuItemVariant.menu_item_id == item.id,
                MenuItemVariant.name == variant_name,
            )
        )
        variant = result.scalar_one_or_none()
        if variant is None:
            variant = MenuItemVariant(menu_item_id=item.id, name=variant_name)
            session.add(variant)
            await session.flush()
        for (name, qty, unit) in rows:
            await put_recipe_row(name, qty, unit, variant.id)

    await session.flush()
    return item


async def seed():
    await create_db_and_tables()

    async with async_session_maker() as session:
        async with session.begin():
            branches = [
                await get_or_create_branch(session, "Downtown"),
                await get_or_create_branch(session, "Riverside"),
            ]

            ingredients = {}
            opening = {}
            for (name, unit, cost, threshold, stock) in INGREDIENTS:
                ingredients[name] = await get_or_create_ingredient(session, name, unit, cost, threshold)
                opening[name] = stock

            for entry in MENU:
                await upsert_menu_item(session, entry, ingredients)

            branch_ids = [b.id for b in branches]
            ingredient_ids = {name: ing.id for name, ing in ingredients.items()}

    # Opening stock goes through the ledger, one transaction per row, only for untracked rows
    ledger = StockLedger(async_session_maker, IngredientCatalog())
    for branch_id in branch_ids:
        for name, ingredient_id in ingredient_ids.items():
            report = await ledger.replay(branch_id, ingredient_id)
            if report.transactions:
                continue
            await ledger.restock(
                branch_id,
                ingredient_id,
                opening[name],
                reason="Opening stock",
                actor=SEED_ACTOR_ID,
            )
            print(f"Seeded {name} at branch {branch_id}: {opening[name]}")


if __name__ == "__main__":
    configure_logging(settings.log_level)
    asyncio.run(seed())
