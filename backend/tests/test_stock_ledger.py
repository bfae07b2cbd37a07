"""Tests for StockLedger mutations, replay and row locking."""

import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event, func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from db.ingredient import Ingredient
from db.inventory import BranchInventory, InventoryTransaction
from ledger.errors import NotFoundError, StorageError, ValidationError
from ledger.history import list_transactions
from ledger.stock import restock_reason
from ledger.types import StockStatus, TransactionType

from conftest import ACTOR_ID


async def _count(session_maker, model, **filters):
    async with session_maker() as session:
        stmt = select(func.count()).select_from(model)
        for name, value in filters.items():
            stmt = stmt.where(getattr(model, name) == value)
        return (await session.execute(stmt)).scalar_one()


def test_restock_reason_prefers_explicit_reason():
    assert restock_reason("Acme Dairy", "Weekly delivery") == "Weekly delivery"
    assert restock_reason("Acme Dairy", None) == "Supplier: Acme Dairy"
    assert restock_reason(None, "  ") == "Manual restock"


@pytest.mark.asyncio
class TestStockLedger:
    async def test_restock_creates_row_lazily(self, ledger, cafe):
        entry = await ledger.restock(cafe.branch_id, cafe.milk_id, 1500, supplier="Acme Dairy", actor=ACTOR_ID)

        assert entry.transaction_type == TransactionType.RESTOCK
        assert entry.stock_before == Decimal("0")
        assert entry.stock_after == Decimal("1500")
        assert entry.reason == "Supplier: Acme Dairy"
        assert entry.sequence == 1
        assert entry.status == StockStatus.OK
        assert await ledger.get_stock(cafe.branch_id, cafe.milk_id) == Decimal("1500")

    async def test_restock_sets_last_restock_at(self, ledger, session_maker, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 10, actor=ACTOR_ID)
        await ledger.adjust(cafe.branch_id, cafe.coffee_id, 5, "count", ACTOR_ID)

        async with session_maker() as session:
            rows = {
                r.ingredient_id: r
                for r in (await session.execute(select(BranchInventory))).scalars().all()
            }
        assert rows[cafe.milk_id].last_restock_at is not None
        assert rows[cafe.coffee_id].last_restock_at is None

    @pytest.mark.parametrize("quantity", [0, -5])
    async def test_restock_and_waste_reject_non_positive(self, ledger, session_maker, cafe, quantity):
        with pytest.raises(ValidationError) as exc:
            await ledger.restock(cafe.branch_id, cafe.milk_id, quantity, actor=ACTOR_ID)
        assert exc.value.field == "quantity"

        with pytest.raises(ValidationError):
            await ledger.record_waste(cafe.branch_id, cafe.milk_id, quantity, "spilled", ACTOR_ID)

        assert await _count(session_maker, InventoryTransaction) == 0
        assert await _count(session_maker, BranchInventory) == 0

    async def test_waste_requires_reason(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 100, actor=ACTOR_ID)
        with pytest.raises(ValidationError) as exc:
            await ledger.record_waste(cafe.branch_id, cafe.milk_id, 10, "   ", ACTOR_ID)
        assert exc.value.field == "reason"

    async def test_waste_without_row_is_not_found_and_creates_nothing(self, ledger, session_maker, cafe):
        with pytest.raises(NotFoundError):
            await ledger.record_waste(cafe.branch_id, cafe.milk_id, 10, "spilled", ACTOR_ID)

        assert await _count(session_maker, BranchInventory) == 0
        assert await _count(session_maker, InventoryTransaction) == 0

    async def test_unknown_branch_or_ingredient(self, ledger, cafe):
        with pytest.raises(NotFoundError):
            await ledger.restock(uuid.uuid4(), cafe.milk_id, 10, actor=ACTOR_ID)
        with pytest.raises(NotFoundError):
            await ledger.restock(cafe.branch_id, uuid.uuid4(), 10, actor=ACTOR_ID)

    async def test_missing_actor_is_rejected(self, ledger, cafe):
        with pytest.raises(ValidationError) as exc:
            await ledger.restock(cafe.branch_id, cafe.milk_id, 10)
        assert exc.value.field == "actor_id"

    async def test_waste_beyond_stock_goes_negative(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 100, actor=ACTOR_ID)
        entry = await ledger.record_waste(cafe.branch_id, cafe.milk_id, 150, "dropped crate", ACTOR_ID)

        assert entry.stock_after == Decimal("-50")
        assert entry.status == StockStatus.CRITICAL

    async def test_status_reflects_reorder_threshold(self, ledger, cafe):
        # milk threshold is 1000
        entry = await ledger.restock(cafe.branch_id, cafe.milk_id, 999, actor=ACTOR_ID)
        assert entry.status == StockStatus.WARNING
        entry = await ledger.restock(cafe.branch_id, cafe.milk_id, 1, actor=ACTOR_ID)
        assert entry.status == StockStatus.OK

    async def test_status_uses_current_threshold_not_cached_copy(self, ledger, session_maker, cafe):
        entry = await ledger.restock(cafe.branch_id, cafe.milk_id, 2000, actor=ACTOR_ID)
        assert entry.status == StockStatus.OK

        async with session_maker() as session:
            async with session.begin():
                await session.execute(
                    update(Ingredient).where(Ingredient.id == cafe.milk_id).values(reorder_threshold=5000)
                )

        entry = await ledger.restock(cafe.branch_id, cafe.milk_id, 1, actor=ACTOR_ID)
        assert entry.status == StockStatus.WARNING

    async def test_adjust_by_delta(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.coffee_id, 500, actor=ACTOR_ID)
        entry = await ledger.adjust(cafe.branch_id, cafe.coffee_id, Decimal("-12.5"), "stocktake", ACTOR_ID)

        assert entry.transaction_type == TransactionType.ADJUSTMENT
        assert entry.quantity_change == Decimal("-12.5")
        assert entry.stock_after == Decimal("487.5")

    async def test_adjust_rejects_zero_and_blank_reason(self, ledger, cafe):
        with pytest.raises(ValidationError) as exc:
            await ledger.adjust(cafe.branch_id, cafe.coffee_id, 0, "stocktake", ACTOR_ID)
        assert exc.value.field == "quantity_change"
        with pytest.raises(ValidationError) as exc:
            await ledger.adjust(cafe.branch_id, cafe.coffee_id, 5, None, ACTOR_ID)
        assert exc.value.field == "reason"

    async def test_adjust_to_counted_stock(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.coffee_id, 500, actor=ACTOR_ID)
        await ledger.record_waste(cafe.branch_id, cafe.coffee_id, 20, "stale", ACTOR_ID)

        entry = await ledger.adjust_to(cafe.branch_id, cafe.coffee_id, 470, "weekly count", ACTOR_ID)
        assert entry.stock_before == Decimal("480")
        assert entry.quantity_change == Decimal("-10")
        assert entry.stock_after == Decimal("470")

    async def test_adjust_to_matching_count_is_rejected(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.coffee_id, 500, actor=ACTOR_ID)
        with pytest.raises(ValidationError):
            await ledger.adjust_to(cafe.branch_id, cafe.coffee_id, 500, "weekly count", ACTOR_ID)

    async def test_refund_restore_skips_untracked_row(self, ledger, session_maker, cafe):
        entry = await ledger.restore_for_refund(cafe.branch_id, cafe.sugar_id, 5, None, "refund", ACTOR_ID)
        assert entry is None
        assert await _count(session_maker, BranchInventory) == 0

    async def test_quantities_are_quantized(self, ledger, cafe):
        entry = await ledger.restock(cafe.branch_id, cafe.milk_id, "1.00005", actor=ACTOR_ID)
        assert entry.quantity_change == Decimal("1.0001")

    async def test_branches_are_independent(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 100, actor=ACTOR_ID)
        await ledger.restock(cafe.other_branch_id, cafe.milk_id, 7, actor=ACTOR_ID)

        assert await ledger.get_stock(cafe.branch_id, cafe.milk_id) == Decimal("100")
        assert await ledger.get_stock(cafe.other_branch_id, cafe.milk_id) == Decimal("7")
        assert await ledger.get_stock(cafe.other_branch_id, cafe.coffee_id) == Decimal("0")

    async def test_replay_reproduces_current_stock(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 1000, actor=ACTOR_ID)
        await ledger.deduct_for_sale(cafe.branch_id, cafe.milk_id, 200, None, ACTOR_ID)
        await ledger.record_waste(cafe.branch_id, cafe.milk_id, "33.3333", "spilled", ACTOR_ID)
        await ledger.restore_for_refund(cafe.branch_id, cafe.milk_id, 200, None, "refund", ACTOR_ID)
        await ledger.adjust(cafe.branch_id, cafe.milk_id, -1, "count", ACTOR_ID)
        await ledger.adjust_to(cafe.branch_id, cafe.milk_id, 900, "count", ACTOR_ID)
        await ledger.record_waste(cafe.branch_id, cafe.milk_id, 1000, "fridge failure", ACTOR_ID)

        report = await ledger.replay(cafe.branch_id, cafe.milk_id)
        assert report.transactions == 7
        assert report.broken_rows == []
        assert report.replayed_stock == Decimal("-100")
        assert report.current_stock == Decimal("-100")
        assert report.consistent

    async def test_replay_of_untracked_row(self, ledger, cafe):
        report = await ledger.replay(cafe.branch_id, cafe.sugar_id)
        assert report.transactions == 0
        assert report.consistent

    async def test_concurrent_writers_serialize_on_the_row(self, ledger, session_maker, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 100, actor=ACTOR_ID)

        await asyncio.gather(
            ledger.restock(cafe.branch_id, cafe.milk_id, 50, actor=ACTOR_ID),
            ledger.record_waste(cafe.branch_id, cafe.milk_id, 20, "spilled", ACTOR_ID),
        )

        assert await ledger.get_stock(cafe.branch_id, cafe.milk_id) == Decimal("130")
        report = await ledger.replay(cafe.branch_id, cafe.milk_id)
        assert report.transactions == 3
        assert report.consistent

        async with session_maker() as session:
            res = await session.execute(
                select(InventoryTransaction)
                .where(InventoryTransaction.ingredient_id == cafe.milk_id)
                .order_by(InventoryTransaction.sequence)
            )
            rows = res.scalars().all()
        assert [r.sequence for r in rows] == [1, 2, 3]
        # The second writer saw the first writer's result
        assert Decimal(rows[2].stock_before) == Decimal(rows[1].stock_after)

    async def test_many_concurrent_sales_lose_no_update(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.coffee_id, 1000, actor=ACTOR_ID)

        await asyncio.gather(*[
            ledger.deduct_for_sale(cafe.branch_id, cafe.coffee_id, 18, None, ACTOR_ID) for _ in range(8)
        ])

        assert await ledger.get_stock(cafe.branch_id, cafe.coffee_id) == Decimal("856")
        assert (await ledger.replay(cafe.branch_id, cafe.coffee_id)).consistent

    async def test_failed_transaction_write_leaves_stock_untouched(self, ledger, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 100, actor=ACTOR_ID)

        def fail_on_ledger_row(session, flush_context, instances):
            if any(isinstance(obj, InventoryTransaction) for obj in session.new):
                raise OperationalError("INSERT INTO inventory_transactions", {}, Exception("disk I/O error"))

        event.listen(Session, "before_flush", fail_on_ledger_row)
        try:
            with pytest.raises(StorageError):
                await ledger.record_waste(cafe.branch_id, cafe.milk_id, 30, "spilled", ACTOR_ID)
        finally:
            event.remove(Session, "before_flush", fail_on_ledger_row)

        assert await ledger.get_stock(cafe.branch_id, cafe.milk_id) == Decimal("100")
        report = await ledger.replay(cafe.branch_id, cafe.milk_id)
        assert report.transactions == 1
        assert report.consistent

    async def test_replay_follows_sequence_when_clocks_disagree(self, ledger, session_maker, cafe):
        await ledger.restock(cafe.branch_id, cafe.milk_id, 100, actor=ACTOR_ID)
        waste = await ledger.record_waste(cafe.branch_id, cafe.milk_id, 30, "spilled", ACTOR_ID)

        # second write stamped by a server whose clock runs behind
        async with session_maker() as session:
            async with session.begin():
                await session.execute(
                    update(InventoryTransaction)
                    .where(InventoryTransaction.id == waste.transaction_id)
                    .values(created_at=datetime(2000, 1, 1, tzinfo=timezone.utc))
                )

        report = await ledger.replay(cafe.branch_id, cafe.milk_id)
        assert report.broken_rows == []
        assert report.replayed_stock == Decimal("70")
        assert report.consistent

        async with session_maker() as session:
            rows, total = await list_transactions(session, branch_id=cafe.branch_id, ingredient_id=cafe.milk_id)
        assert total == 2
        assert [t.sequence for (t, _) in rows] == [2, 1]


def test_order_link_on_ledger_rows_is_never_rewritten():
    (fk,) = InventoryTransaction.__table__.c.order_id.foreign_keys
    assert fk.ondelete == "RESTRICT"
