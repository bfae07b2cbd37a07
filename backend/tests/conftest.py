"""Pytest configuration and fixtures."""

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.cache import MemoryCache
from core.deps import get_catalog
from db.branch import Branch
from db.database import create_db_and_tables, get_async_session, get_session_maker, make_engine
from db.ingredient import Ingredient
from db.menu_item import MenuItem, MenuItemVariant
from db.order import Order, OrderItem
from db.recipe import Recipe
from ledger.catalog import IngredientCatalog
from ledger.stock import StockLedger

ACTOR_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
async def db_engine(tmp_path):
    """File-backed SQLite so concurrent sessions see each other's commits."""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def catalog():
    return IngredientCatalog(MemoryCache())


@pytest.fixture
def ledger(session_maker, catalog):
    return StockLedger(session_maker, catalog)


@pytest.fixture
async def cafe(session_maker):
    """
    One branch (plus a second, empty one) with a small menu:

    - Latte: milk 200 ml + coffee 18 g; "Large" overrides milk to 300 ml
    - Croissant: flour 10 g; "Big" overrides flour to 15 g
    - Tea: milk 200 ml; "Sweet" adds sugar 5 g
    - Scone: flour 0.05 kg (converted to grams)
    - Water: no recipe
    """
    async with session_maker() as session:
        async with session.begin():
            branch = Branch(name="Downtown")
            other_branch = Branch(name="Riverside")
            milk = Ingredient(name="milk", unit="ml", cost_per_unit=Decimal("0.0012"), reorder_threshold=Decimal("1000"))
            coffee = Ingredient(name="coffee", unit="g", cost_per_unit=Decimal("0.04"), reorder_threshold=Decimal("100"))
            sugar = Ingredient(name="sugar", unit="g", cost_per_unit=Decimal("0.002"), reorder_threshold=Decimal("50"))
            flour = Ingredient(name="flour", unit="g", cost_per_unit=Decimal("0.0015"), reorder_threshold=Decimal("500"))
            latte = MenuItem(name="Latte")
            croissant = MenuItem(name="Croissant")
            tea = MenuItem(name="Tea")
            scone = MenuItem(name="Scone")
            water = MenuItem(name="Water")
            session.add_all([branch, other_branch, milk, coffee, sugar, flour, latte, croissant, tea, scone, water])
            await session.flush()

            large = MenuItemVariant(menu_item_id=latte.id, name="Large")
            big = MenuItemVariant(menu_item_id=croissant.id, name="Big")
            sweet = MenuItemVariant(menu_item_id=tea.id, name="Sweet")
            session.add_all([large, big, sweet])
            await session.flush()

            session.add_all([
                Recipe(menu_item_id=latte.id, ingredient_id=milk.id, quantity_required=Decimal("200"), unit="ml"),
                Recipe(menu_item_id=latte.id, ingredient_id=coffee.id, quantity_required=Decimal("18"), unit="g"),
                Recipe(
                    menu_item_id=latte.id, ingredient_id=milk.id, menu_item_variant_id=large.id,
                    quantity_required=Decimal("300"), unit="ml",
                ),
                Recipe(menu_item_id=croissant.id, ingredient_id=flour.id, quantity_required=Decimal("10"), unit="g"),
                Recipe(
                    menu_item_id=croissant.id, ingredient_id=flour.id, menu_item_variant_id=big.id,
                    quantity_required=Decimal("15"), unit="g",
                ),
                Recipe(menu_item_id=tea.id, ingredient_id=milk.id, quantity_required=Decimal("200"), unit="ml"),
                Recipe(
                    menu_item_id=tea.id, ingredient_id=sugar.id, menu_item_variant_id=sweet.id,
                    quantity_required=Decimal("5"), unit="g",
                ),
                Recipe(menu_item_id=scone.id, ingredient_id=flour.id, quantity_required=Decimal("0.05"), unit="kg"),
            ])

            ids = SimpleNamespace(
                branch_id=branch.id,
                other_branch_id=other_branch.id,
                milk_id=milk.id,
                coffee_id=coffee.id,
                sugar_id=sugar.id,
                flour_id=flour.id,
                latte_id=latte.id,
                large_id=large.id,
                croissant_id=croissant.id,
                big_id=big.id,
                tea_id=tea.id,
                sweet_id=sweet.id,
                scone_id=scone.id,
                water_id=water.id,
            )
    return ids


@pytest.fixture
def make_order(session_maker):
    """Insert a completed order; `lines` are (menu_item_id, variant_id, quantity)."""
    counter = {"n": 0}

    async def _make(branch_id, lines):
        counter["n"] += 1
        async with session_maker() as session:
            async with session.begin():
                order = Order(
                    branch_id=branch_id,
                    order_number=f"ORD-{counter['n']:04d}",
                    is_refunded=False,
                    created_by=ACTOR_ID,
                )
                order.items = [
                    OrderItem(menu_item_id=item_id, menu_item_variant_id=variant_id, quantity=qty)
                    for (item_id, variant_id, qty) in lines
                ]
                session.add(order)
                await session.flush()
                order_id = order.id
        return order_id

    return _make


@pytest.fixture
async def client(session_maker, catalog):
    """HTTP client against the app with the test database wired in."""
    from main import app

    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_catalog] = lambda: catalog
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()
