import asyncio
import sys
from pathlib import Path

"""
Replay every tracked (branch, ingredient) row from its transaction log and report
rows whose snapshot stock disagrees with the log.

Run from backend/: `python scripts/verify_ledger.py`
Exit code is 1 when any row is inconsistent.
"""

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select

from core.config import settings
from core.logging import configure_logging
from db.database import async_session_maker
from db.inventory import BranchInventory
from ledger.catalog import IngredientCatalog
from ledger.stock import StockLedger


async def verify() -> int:
    async with async_session_maker() as session:
        res = await session.execute(select(BranchInventory.branch_id, BranchInventory.ingredient_id))
        keys = list(res.all())

    ledger = StockLedger(async_session_maker, IngredientCatalog())
    bad = 0
    for (branch_id, ingredient_id) in keys:
        report = await ledger.replay(branch_id, ingredient_id)
        if report.consistent:
            continue
        bad += 1
        print(
            f"MISMATCH branch={branch_id} ingredient={ingredient_id} "
            f"replayed={report.replayed_stock} current={report.current_stock} "
            f"broken_rows={len(report.broken_rows)}"
        )

    print(f"Checked {len(keys)} inventory rows, {bad} inconsistent")
    return 1 if bad else 0


if __name__ == "__main__":
    configure_logging(settings.log_level)
    sys.exit(asyncio.run(verify()))
