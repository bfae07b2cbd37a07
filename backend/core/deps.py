from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.cache import build_cache
from core.config import settings
from db.database import get_session_maker
from ledger.catalog import IngredientCatalog
from ledger.refunds import OrderRefunds, RefundCompensator
from ledger.sales import SaleDeductor
from ledger.stock import StockLedger

_catalog = IngredientCatalog(build_cache(settings.catalog_cache))


def get_catalog() -> IngredientCatalog:
    return _catalog


def get_ledger(
    session_maker: async_sessionmaker = Depends(get_session_maker),
    catalog: IngredientCatalog = Depends(get_catalog),
) -> StockLedger:
    return StockLedger(session_maker, catalog)


def get_sale_deductor(
    session_maker: async_sessionmaker = Depends(get_session_maker),
    ledger: StockLedger = Depends(get_ledger),
) -> SaleDeductor:
    return SaleDeductor(session_maker, ledger)


def get_order_refunds(
    session_maker: async_sessionmaker = Depends(get_session_maker),
    ledger: StockLedger = Depends(get_ledger),
) -> OrderRefunds:
    return OrderRefunds(session_maker, RefundCompensator(session_maker, ledger))
