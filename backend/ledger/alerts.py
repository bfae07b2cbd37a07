import logging
from decimal import Decimal
from typing import Dict, List
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.ingredient import Ingredient
from db.inventory import BranchInventory
from .types import StockStatus

logger = logging.getLogger(__name__)

_URGENCY_RANK = {StockStatus.CRITICAL: 0, StockStatus.WARNING: 1, StockStatus.OK: 2}


def stock_status(current_stock, reorder_threshold) -> StockStatus:
    """CRITICAL at or below zero, WARNING below the reorder threshold, OK otherwise."""
    stock = Decimal(str(current_stock))
    threshold = Decimal(str(reorder_threshold or 0))
    if stock <= 0:
        return StockStatus.CRITICAL
    if stock < threshold:
        return StockStatus.WARNING
    return StockStatus.OK


class LowStockMonitor:
    """Read-side projection of stock levels. Holds no state; every call re-reads."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def status(self, branch_id: UUID, ingredient_id: UUID, current_stock, reorder_threshold) -> StockStatus:
        result = stock_status(current_stock, reorder_threshold)
        if result != StockStatus.OK:
            logger.debug("Low stock branch=%s ingredient=%s status=%s", branch_id, ingredient_id, result.value)
        return result

    async def alerts(self, branch_id: UUID) -> Dict:
        res = await self.db.execute(
            select(BranchInventory, Ingredient)
            .join(Ingredient, BranchInventory.ingredient_id == Ingredient.id)
            .where(BranchInventory.branch_id == branch_id)
        )
        alerts: List[Dict] = []
        for (inv, ing) in res.all():
            current = Decimal(str(inv.current_stock))
            threshold = Decimal(str(ing.reorder_threshold or 0))
            urgency = self.status(branch_id, ing.id, current, threshold)
            if urgency == StockStatus.OK:
                continue
            alerts.append(
                {
                    "branch_id": branch_id,
                    "ingredient_id": ing.id,
                    "ingredient_name": ing.name,
                    "unit": ing.unit,
                    "current_stock": current,
                    "reorder_threshold": threshold,
                    "deficit": threshold - current,
                    "urgency": urgency,
                }
            )

        # Critical first, then the largest deficit
        alerts.sort(key=lambda a: (_URGENCY_RANK[a["urgency"]], -a["deficit"]))
        return {
            "alerts": alerts,
            "summary": {
                "total": len(alerts),
                "critical": sum(1 for a in alerts if a["urgency"] == StockStatus.CRITICAL),
                "warning": sum(1 for a in alerts if a["urgency"] == StockStatus.WARNING),
            },
        }

    async def overview(self, branch_id: UUID) -> List[Dict]:
        """Every ingredient with this branch's stock; untracked ingredients read as 0."""
        res = await self.db.execute(
            select(Ingredient, BranchInventory)
            .outerjoin(
                BranchInventory,
                and_(BranchInventory.ingredient_id == Ingredient.id, BranchInventory.branch_id == branch_id),
            )
            .order_by(func.lower(Ingredient.name).asc())
        )

        out = []
        for (ing, inv) in res.all():
            current = Decimal(str(inv.current_stock)) if inv is not None else Decimal("0")
            threshold = Decimal(str(ing.reorder_threshold or 0))
            out.append(
                {
                    "ingredient_id": ing.id,
                    "ingredient_name": ing.name,
                    "unit": ing.unit,
                    "current_stock": current,
                    "reorder_threshold": threshold,
                    "tracked": inv is not None,
                    "last_restock_at": inv.last_restock_at if inv is not None else None,
                    "status": self.status(branch_id, ing.id, current, threshold),
                }
            )
        return out
