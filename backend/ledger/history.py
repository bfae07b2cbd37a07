from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.ingredient import Ingredient
from db.inventory import InventoryTransaction
from .errors import ValidationError
from .types import TransactionType


def parse_transaction_type(value: Optional[str]) -> Optional[TransactionType]:
    if value is None or not value.strip():
        return None
    try:
        return TransactionType(value.strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in TransactionType)
        raise ValidationError(f"type must be one of {allowed}", field="type")


async def list_transactions(
    db: AsyncSession,
    *,
    branch_id: UUID,
    transaction_type: Optional[TransactionType] = None,
    ingredient_id: Optional[UUID] = None,
    order_id: Optional[UUID] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Tuple[InventoryTransaction, Ingredient]], int]:
    """Newest first. Returns (rows, total matching rows)."""
    filters = [InventoryTransaction.branch_id == branch_id]
    if transaction_type is not None:
        filters.append(InventoryTransaction.transaction_type == transaction_type.value)
    if ingredient_id is not None:
        filters.append(InventoryTransaction.ingredient_id == ingredient_id)
    if order_id is not None:
        filters.append(InventoryTransaction.order_id == order_id)

    total = (
        await db.execute(select(func.count()).select_from(InventoryTransaction).where(*filters))
    ).scalar_one()

    if ingredient_id is not None:
        # one (branch, ingredient) chain: sequence is the write order
        order_by = [InventoryTransaction.sequence.desc()]
    else:
        order_by = [InventoryTransaction.created_at.desc(), InventoryTransaction.sequence.desc()]

    res = await db.execute(
        select(InventoryTransaction, Ingredient)
        .outerjoin(Ingredient, InventoryTransaction.ingredient_id == Ingredient.id)
        .where(*filters)
        .order_by(*order_by)
        .limit(limit)
        .offset(offset)
    )
    return list(res.all()), int(total or 0)
