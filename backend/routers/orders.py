from fastapi import APIRouter, Depends, status

from core.deps import get_order_refunds
from ledger.refunds import OrderRefunds
from routers.inventory import entry_out
from schemas.orders import RefundOut, RefundRequest

router = APIRouter()


@router.post("/refund", response_model=RefundOut, status_code=status.HTTP_200_OK)
async def refund_order(payload: RefundRequest, refunds: OrderRefunds = Depends(get_order_refunds)):
    """
    Mark the order refunded and restore the stock its recipes consumed.

    The refund flag flips first; a second call for the same order gets 409 and
    writes nothing. If restoring an ingredient fails the response is 500 and
    lists the REFUND transactions already applied.
    """
    result = await refunds.refund_order(payload.order_id, payload.reason, payload.actor_id)
    return RefundOut(
        order_id=result.order.id,
        order_number=result.order.order_number,
        branch_id=result.order.branch_id,
        reason=result.reason,
        transactions_count=len(result.entries),
        transactions=[entry_out(e) for e in result.entries],
        skipped_ingredient_ids=result.skipped_ingredients,
    )
