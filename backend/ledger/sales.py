"""
Sale deduction for a completed order.

Lines are resolved through the recipes and summed per ingredient, so an order
writes one SALE row per ingredient no matter how many lines consumed it.
Atomicity is per ingredient: if ingredient N fails, ingredients before it stay
deducted and PartialApplicationError lists them.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.inventory import InventoryTransaction
from .errors import AlreadyDeductedError, AlreadyRefundedError, LedgerError, PartialApplicationError, ValidationError
from .orders import load_order, to_snapshot
from .recipes import RecipeResolver
from .stock import StockLedger
from .types import SaleResult, TransactionType
from .units import quantize

logger = logging.getLogger(__name__)


def sum_pairs(pairs: Iterable[Tuple[UUID, object]]) -> Dict[UUID, Decimal]:
    totals: Dict[UUID, Decimal] = {}
    for ingredient_id, quantity in pairs:
        qty = quantize(quantity)
        if qty <= 0:
            raise ValidationError(
                f"quantity for ingredient {ingredient_id} must be greater than 0", field="quantity"
            )
        totals[ingredient_id] = totals.get(ingredient_id, Decimal("0")) + qty
    return totals


class SaleDeductor:
    def __init__(self, session_maker: async_sessionmaker, ledger: StockLedger):
        self.session_maker = session_maker
        self.ledger = ledger

    async def deduct_order(self, order_id: UUID, actor: UUID) -> SaleResult:
        async with self.session_maker() as db:
            order = to_snapshot(await load_order(db, order_id))

            if order.is_refunded:
                raise AlreadyRefundedError(order_id)

            # Order-level guard: the ledger itself never checks for repeats.
            existing = await db.execute(
                select(func.count())
                .select_from(InventoryTransaction)
                .where(InventoryTransaction.order_id == order_id)
                .where(InventoryTransaction.transaction_type == TransactionType.SALE.value)
            )
            if int(existing.scalar_one() or 0) > 0:
                raise AlreadyDeductedError(order_id)

            resolution = await RecipeResolver(db).resolve_lines(order.items)

        pairs = [(ing, qty) for ing, qty in resolution.totals.items() if qty > 0]
        result = await self.deduct_resolved(order.branch_id, pairs, order.id, actor)
        result.missing_recipes = resolution.missing
        if resolution.missing:
            logger.warning(
                "Order %s: %d line(s) had no recipe and did not affect stock",
                order.order_number, len(resolution.missing),
            )
        return result

    async def deduct_resolved(
        self,
        branch_id: UUID,
        pairs: Iterable[Tuple[UUID, object]],
        order_id: Optional[UUID],
        actor: UUID,
    ) -> SaleResult:
        totals = sum_pairs(pairs)
        result = SaleResult(order_id=order_id, branch_id=branch_id)
        for ingredient_id in sorted(totals, key=str):
            try:
                entry = await self.ledger.deduct_for_sale(
                    branch_id, ingredient_id, totals[ingredient_id], order_id, actor
                )
            except LedgerError as e:
                if not result.entries:
                    raise
                logger.error(
                    "Sale deduction for order %s stopped at ingredient %s after %d applied: %s",
                    order_id, ingredient_id, len(result.entries), e.message,
                )
                raise PartialApplicationError(
                    f"Sale deduction partially applied: {e.message}",
                    applied=result.entries,
                    failed_ingredient_id=ingredient_id,
                ) from e
            result.entries.append(entry)
        return result
