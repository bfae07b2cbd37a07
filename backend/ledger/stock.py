"""
Stock ledger: the only writer of BranchInventory and InventoryTransaction.

Every mutation runs in its own storage transaction scoped to one
(branch, ingredient) row:

1. insert the row if missing (ON CONFLICT DO NOTHING) when the operation may create it
2. SELECT .. FOR UPDATE the row; concurrent writers of the same row queue here
3. compute stock_after = stock_before + quantity_change
4. update the row and append the transaction row, commit both together

Stock has no floor. Waste or sales beyond the recorded stock leave it negative.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.inventory import BranchInventory, InventoryTransaction
from .alerts import stock_status
from .catalog import IngredientCatalog, require_branch
from .errors import LedgerError, NotFoundError, StorageError, ValidationError
from .types import LedgerEntry, ReplayReport, TransactionType
from .units import quantize

logger = logging.getLogger(__name__)

# What to do when the (branch, ingredient) row does not exist yet.
CREATE = "create"
RAISE = "raise"
SKIP = "skip"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_decimal(value, field: str) -> Decimal:
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field=field)
    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return quantize(d)


def _positive(value, field: str = "quantity") -> Decimal:
    d = _to_decimal(value, field)
    if d <= 0:
        raise ValidationError(f"{field} must be greater than 0", field=field)
    return d


def _required_text(value: Optional[str], field: str) -> str:
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"{field} is required", field=field)
    return v


def _optional_text(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    return v or None


def _require_actor(actor: Optional[UUID]) -> UUID:
    if actor is None:
        raise ValidationError("actor_id is required", field="actor_id")
    return actor


def restock_reason(supplier: Optional[str] = None, reason: Optional[str] = None) -> str:
    reason = _optional_text(reason)
    if reason:
        return reason
    supplier = _optional_text(supplier)
    if supplier:
        return f"Supplier: {supplier}"
    return "Manual restock"


class StockLedger:
    def __init__(self, session_maker: async_sessionmaker, catalog: IngredientCatalog):
        self.session_maker = session_maker
        self.catalog = catalog

    # ----------------------------
    # Mutations
    # ----------------------------

    async def deduct_for_sale(
        self,
        branch_id: UUID,
        ingredient_id: UUID,
        quantity,
        order_id: Optional[UUID],
        actor: UUID,
    ) -> LedgerEntry:
        qty = _positive(quantity)
        return await self._mutate(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=TransactionType.SALE,
            compute_change=lambda before: -qty,
            on_missing=CREATE,
            order_id=order_id,
            reason=None,
            actor=_require_actor(actor),
        )

    async def restock(
        self,
        branch_id: UUID,
        ingredient_id: UUID,
        quantity,
        reason: Optional[str] = None,
        actor: Optional[UUID] = None,
        supplier: Optional[str] = None,
    ) -> LedgerEntry:
        qty = _positive(quantity)
        return await self._mutate(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=TransactionType.RESTOCK,
            compute_change=lambda before: qty,
            on_missing=CREATE,
            reason=restock_reason(supplier, reason),
            actor=_require_actor(actor),
        )

    async def record_waste(
        self,
        branch_id: UUID,
        ingredient_id: UUID,
        quantity,
        reason: Optional[str],
        actor: UUID,
    ) -> LedgerEntry:
        qty = _positive(quantity)
        text = _required_text(reason, "reason")
        return await self._mutate(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=TransactionType.WASTE,
            compute_change=lambda before: -qty,
            on_missing=RAISE,
            reason=text,
            actor=_require_actor(actor),
        )

    async def restore_for_refund(
        self,
        branch_id: UUID,
        ingredient_id: UUID,
        quantity,
        order_id: Optional[UUID],
        reason: Optional[str],
        actor: UUID,
    ) -> Optional[LedgerEntry]:
        """Returns None, writing nothing, when the branch never tracked this ingredient."""
        qty = _positive(quantity)
        return await self._mutate(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=TransactionType.REFUND,
            compute_change=lambda before: qty,
            on_missing=SKIP,
            order_id=order_id,
            reason=_optional_text(reason),
            actor=_require_actor(actor),
        )

    async def adjust(
        self,
        branch_id: UUID,
        ingredient_id: UUID,
        quantity_change,
        reason: Optional[str],
        actor: UUID,
    ) -> LedgerEntry:
        change = _to_decimal(quantity_change, "quantity_change")
        if change == 0:
            raise ValidationError("quantity_change must not be zero", field="quantity_change")
        text = _required_text(reason, "reason")
        return await self._mutate(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=TransactionType.ADJUSTMENT,
            compute_change=lambda before: change,
            on_missing=CREATE,
            reason=text,
            actor=_require_actor(actor),
        )

    async def adjust_to(
        self,
        branch_id: UUID,
        ingredient_id: UUID,
        counted_stock,
        reason: Optional[str],
        actor: UUID,
    ) -> LedgerEntry:
        """Record a physical count: the delta is computed under the row lock."""
        counted = _to_decimal(counted_stock, "counted_stock")
        text = _required_text(reason, "reason")
        return await self._mutate(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=TransactionType.ADJUSTMENT,
            compute_change=lambda before: counted - before,
            on_missing=CREATE,
            reason=text,
            actor=_require_actor(actor),
        )

    # ----------------------------
    # Reads
    # ----------------------------

    async def get_stock(self, branch_id: UUID, ingredient_id: UUID) -> Decimal:
        """Current stock; a missing row reads as zero."""
        async with self.session_maker() as db:
            row = await self._find_row(db, branch_id, ingredient_id)
            return quantize(row.current_stock) if row is not None else quantize(0)

    async def replay(self, branch_id: UUID, ingredient_id: UUID) -> ReplayReport:
        """
        Rebuild stock from the transaction log and compare with the snapshot row.

        Rows are walked in sequence order. created_at comes from the writing
        server's clock and is not trusted for ordering.
        """
        async with self.session_maker() as db:
            row = await self._find_row(db, branch_id, ingredient_id)
            res = await db.execute(
                select(InventoryTransaction)
                .where(InventoryTransaction.branch_id == branch_id)
                .where(InventoryTransaction.ingredient_id == ingredient_id)
                .order_by(InventoryTransaction.sequence.asc())
            )
            txns = res.scalars().all()

        running = quantize(0)
        broken = []
        for t in txns:
            before = quantize(t.stock_before)
            change = quantize(t.quantity_change)
            after = quantize(t.stock_after)
            if before != running or after != before + change:
                broken.append(t.id)
            running = running + change

        current = quantize(row.current_stock) if row is not None else quantize(0)
        report = ReplayReport(
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transactions=len(txns),
            replayed_stock=running,
            current_stock=current,
            broken_rows=broken,
        )
        if not report.consistent:
            logger.error(
                "Ledger replay mismatch branch=%s ingredient=%s replayed=%s current=%s broken_rows=%d",
                branch_id, ingredient_id, running, current, len(broken),
            )
        return report

    # ----------------------------
    # Internals
    # ----------------------------

    async def _find_row(self, db: AsyncSession, branch_id: UUID, ingredient_id: UUID) -> Optional[BranchInventory]:
        res = await db.execute(
            select(BranchInventory)
            .where(BranchInventory.branch_id == branch_id)
            .where(BranchInventory.ingredient_id == ingredient_id)
        )
        return res.scalar_one_or_none()

    async def _lock_row(
        self, db: AsyncSession, branch_id: UUID, ingredient_id: UUID, create: bool
    ) -> Optional[BranchInventory]:
        if create:
            # postgres in production, sqlite in tests; both support ON CONFLICT DO NOTHING
            dialect = db.get_bind().dialect.name
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            await db.execute(
                insert(BranchInventory.__table__)
                .values(
                    id=uuid.uuid4(),
                    branch_id=branch_id,
                    ingredient_id=ingredient_id,
                    current_stock=Decimal("0"),
                    version=0,
                    last_modified_at=_utcnow(),
                )
                .on_conflict_do_nothing(index_elements=["branch_id", "ingredient_id"])
            )
        res = await db.execute(
            select(BranchInventory)
            .where(BranchInventory.branch_id == branch_id)
            .where(BranchInventory.ingredient_id == ingredient_id)
            .with_for_update()
        )
        return res.scalar_one_or_none()

    async def _mutate(
        self,
        *,
        branch_id: UUID,
        ingredient_id: UUID,
        transaction_type: TransactionType,
        compute_change: Callable[[Decimal], Decimal],
        on_missing: str,
        actor: UUID,
        order_id: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> Optional[LedgerEntry]:
        try:
            async with self.session_maker() as db:
                async with db.begin():
                    await require_branch(db, branch_id)
                    # threshold for the returned status comes from the row, never the cache
                    info = await self.catalog.require(db, ingredient_id, fresh=True)

                    row = await self._lock_row(db, branch_id, ingredient_id, create=on_missing == CREATE)
                    if row is None:
                        if on_missing == SKIP:
                            logger.info(
                                "%s skipped: branch=%s ingredient=%s has no inventory row",
                                transaction_type.value, branch_id, ingredient_id,
                            )
                            return None
                        raise NotFoundError(
                            f"No inventory record for ingredient {ingredient_id} at branch {branch_id}"
                        )

                    now = _utcnow()
                    before = quantize(row.current_stock)
                    change = quantize(compute_change(before))
                    if change == 0:
                        raise ValidationError("quantity change must not be zero", field="quantity")
                    after = before + change

                    row.current_stock = after
                    sequence = int(row.version or 0) + 1
                    row.version = sequence
                    row.last_modified_at = now
                    if transaction_type == TransactionType.RESTOCK:
                        row.last_restock_at = now

                    txn = InventoryTransaction(
                        id=uuid.uuid4(),
                        branch_id=branch_id,
                        ingredient_id=ingredient_id,
                        transaction_type=transaction_type.value,
                        quantity_change=change,
                        stock_before=before,
                        stock_after=after,
                        sequence=sequence,
                        order_id=order_id,
                        reason=reason,
                        created_by=actor,
                        created_at=now,
                    )
                    db.add(txn)
                    await db.flush()
        except LedgerError:
            raise
        except SQLAlchemyError as e:
            logger.exception(
                "%s failed for branch=%s ingredient=%s", transaction_type.value, branch_id, ingredient_id
            )
            raise StorageError(
                f"Failed to record {transaction_type.value} for ingredient {ingredient_id} at branch {branch_id}"
            ) from e

        logger.info(
            "%s branch=%s ingredient=%s change=%s stock %s -> %s order=%s",
            transaction_type.value, branch_id, ingredient_id, change, before, after, order_id,
        )
        return LedgerEntry(
            transaction_id=txn.id,
            branch_id=branch_id,
            ingredient_id=ingredient_id,
            transaction_type=transaction_type,
            quantity_change=change,
            stock_before=before,
            stock_after=after,
            sequence=sequence,
            order_id=order_id,
            reason=reason,
            created_by=actor,
            created_at=now,
            status=stock_status(after, info.reorder_threshold),
        )
