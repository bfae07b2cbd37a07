from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db.order import Order
from .errors import NotFoundError
from .types import OrderLine, OrderSnapshot


def to_snapshot(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        id=order.id,
        branch_id=order.branch_id,
        order_number=order.order_number,
        is_refunded=bool(order.is_refunded),
        items=[
            OrderLine(
                menu_item_id=it.menu_item_id,
                menu_item_variant_id=it.menu_item_variant_id,
                quantity=int(it.quantity or 0),
            )
            for it in (order.items or [])
        ],
    )


async def load_order(db: AsyncSession, order_id: UUID, for_update: bool = False) -> Order:
    stmt = select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    order = (await db.execute(stmt)).scalar_one_or_none()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order
