"""
Refund compensation.

OrderRefunds owns the order-level guard (is_refunded flips once, under a row
lock). RefundCompensator replays the order's recipe consumption as REFUND rows
and performs no idempotency check of its own: never call it twice for one order.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .errors import AlreadyRefundedError, LedgerError, PartialApplicationError, StorageError, ValidationError
from .orders import load_order, to_snapshot
from .recipes import RecipeResolver
from .stock import StockLedger
from .types import OrderSnapshot, RefundResult

logger = logging.getLogger(__name__)


def refund_transaction_reason(order: OrderSnapshot) -> str:
    return f"Refund for order: {order.order_number}"


class RefundCompensator:
    def __init__(self, session_maker: async_sessionmaker, ledger: StockLedger):
        self.session_maker = session_maker
        self.ledger = ledger

    async def compensate(self, order: OrderSnapshot, reason: str, actor: UUID) -> RefundResult:
        async with self.session_maker() as db:
            resolution = await RecipeResolver(db).resolve_lines(order.items)

        result = RefundResult(order=order, reason=reason)
        tx_reason = refund_transaction_reason(order)
        for ingredient_id in sorted(resolution.totals, key=str):
            qty = resolution.totals[ingredient_id]
            if qty <= 0:
                continue
            try:
                entry = await self.ledger.restore_for_refund(
                    order.branch_id, ingredient_id, qty, order.id, tx_reason, actor
                )
            except LedgerError as e:
                logger.error(
                    "Refund of order %s stopped at ingredient %s after %d restored: %s",
                    order.order_number, ingredient_id, len(result.entries), e.message,
                )
                raise PartialApplicationError(
                    f"Refund stock restoration partially applied: {e.message}",
                    applied=result.entries,
                    failed_ingredient_id=ingredient_id,
                ) from e
            if entry is None:
                result.skipped_ingredients.append(ingredient_id)
                continue
            result.entries.append(entry)

        logger.info(
            "Refund of order %s restored %d ingredient(s), skipped %d untracked",
            order.order_number, len(result.entries), len(result.skipped_ingredients),
        )
        return result


class OrderRefunds:
    def __init__(self, session_maker: async_sessionmaker, compensator: RefundCompensator):
        self.session_maker = session_maker
        self.compensator = compensator

    async def refund_order(self, order_id: UUID, reason: Optional[str], actor: Optional[UUID]) -> RefundResult:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("reason is required", field="reason")
        if actor is None:
            raise ValidationError("actor_id is required", field="actor_id")

        try:
            async with self.session_maker() as db:
                async with db.begin():
                    order = await load_order(db, order_id, for_update=True)
                    if order.is_refunded:
                        raise AlreadyRefundedError(order_id)
                    order.is_refunded = True
                    order.refund_reason = reason
                    order.refunded_at = datetime.now(timezone.utc)
                    order.refunded_by = actor
                    snapshot = to_snapshot(order)
        except LedgerError:
            raise
        except SQLAlchemyError as e:
            logger.exception("Failed to mark order %s refunded", order_id)
            raise StorageError(f"Failed to mark order {order_id} refunded") from e

        logger.info("Order %s marked refunded: %s", snapshot.order_number, reason)
        return await self.compensator.compensate(snapshot, reason, actor)
