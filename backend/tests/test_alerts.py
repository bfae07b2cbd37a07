"""Tests for stock status and low-stock alerts."""

from decimal import Decimal

import pytest

from ledger.alerts import LowStockMonitor, stock_status
from ledger.types import StockStatus

from conftest import ACTOR_ID


class TestStockStatus:
    def test_zero_is_critical(self):
        assert stock_status(0, 100) == StockStatus.CRITICAL

    def test_negative_is_critical(self):
        assert stock_status(Decimal("-5"), 100) == StockStatus.CRITICAL

    def test_just_below_threshold_is_warning(self):
        assert stock_status(Decimal("99.99"), 100) == StockStatus.WARNING

    def test_at_threshold_is_ok(self):
        assert stock_status(100, 100) == StockStatus.OK

    def test_zero_threshold(self):
        assert stock_status(1, 0) == StockStatus.OK


@pytest.mark.asyncio
class TestLowStockMonitor:
    async def test_alerts_sorted_critical_first_then_deficit(self, ledger, session_maker, cafe):
        # thresholds: milk 1000, coffee 100, sugar 50, flour 500
        await ledger.restock(cafe.branch_id, cafe.milk_id, 900, actor=ACTOR_ID)     # warning, deficit 100
        await ledger.restock(cafe.branch_id, cafe.flour_id, 100, actor=ACTOR_ID)    # warning, deficit 400
        await ledger.restock(cafe.branch_id, cafe.coffee_id, 500, actor=ACTOR_ID)   # ok
        await ledger.restock(cafe.branch_id, cafe.sugar_id, 10, actor=ACTOR_ID)
        await ledger.record_waste(cafe.branch_id, cafe.sugar_id, 10, "wet", ACTOR_ID)  # critical

        async with session_maker() as session:
            report = await LowStockMonitor(session).alerts(cafe.branch_id)

        assert [a["ingredient_id"] for a in report["alerts"]] == [cafe.sugar_id, cafe.flour_id, cafe.milk_id]
        assert [a["urgency"] for a in report["alerts"]] == [
            StockStatus.CRITICAL, StockStatus.WARNING, StockStatus.WARNING,
        ]
        assert report["alerts"][1]["deficit"] == Decimal("400")
        assert report["summary"] == {"total": 3, "critical": 1, "warning": 2}

    async def test_alerts_are_branch_scoped(self, ledger, session_maker, cafe):
        await ledger.restock(cafe.other_branch_id, cafe.milk_id, 1, actor=ACTOR_ID)

        async with session_maker() as session:
            report = await LowStockMonitor(session).alerts(cafe.branch_id)

        assert report["alerts"] == []
        assert report["summary"] == {"total": 0, "critical": 0, "warning": 0}

    async def test_overview_lists_every_ingredient(self, ledger, session_maker, cafe):
        await ledger.restock(cafe.branch_id, cafe.coffee_id, 500, actor=ACTOR_ID)

        async with session_maker() as session:
            rows = await LowStockMonitor(session).overview(cafe.branch_id)

        by_id = {r["ingredient_id"]: r for r in rows}
        assert set(by_id) == {cafe.milk_id, cafe.coffee_id, cafe.sugar_id, cafe.flour_id}
        assert by_id[cafe.coffee_id]["tracked"] is True
        assert by_id[cafe.coffee_id]["status"] == StockStatus.OK
        assert by_id[cafe.coffee_id]["last_restock_at"] is not None
        assert by_id[cafe.milk_id]["tracked"] is False
        assert by_id[cafe.milk_id]["current_stock"] == Decimal("0")
        assert by_id[cafe.milk_id]["status"] == StockStatus.CRITICAL
        assert [r["ingredient_name"] for r in rows] == ["coffee", "flour", "milk", "sugar"]
