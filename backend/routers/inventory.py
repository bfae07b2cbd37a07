from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.deps import get_ledger, get_sale_deductor
from db.database import get_async_session
from ledger.alerts import LowStockMonitor
from ledger.history import list_transactions, parse_transaction_type
from ledger.sales import SaleDeductor
from ledger.stock import StockLedger
from ledger.types import LedgerEntry, SaleResult, TransactionType
from schemas.inventory import (
    AdjustRequest,
    InventoryRowOut,
    LedgerEntryOut,
    LowStockAlertOut,
    LowStockResponse,
    LowStockSummary,
    OrderLineOut,
    Pagination,
    ReplayReportOut,
    RestockRequest,
    SaleDeductionOut,
    SaleDeductionRequest,
    TransactionOut,
    TransactionPage,
    WasteRequest,
)

router = APIRouter()


def entry_out(entry: LedgerEntry) -> LedgerEntryOut:
    return LedgerEntryOut(
        transaction_id=entry.transaction_id,
        branch_id=entry.branch_id,
        ingredient_id=entry.ingredient_id,
        transaction_type=entry.transaction_type.value,
        quantity_change=float(entry.quantity_change),
        stock_before=float(entry.stock_before),
        stock_after=float(entry.stock_after),
        order_id=entry.order_id,
        reason=entry.reason,
        created_by=entry.created_by,
        created_at=entry.created_at,
        status=entry.status.value,
    )


def _sale_out(result: SaleResult) -> SaleDeductionOut:
    return SaleDeductionOut(
        order_id=result.order_id,
        branch_id=result.branch_id,
        transactions_count=len(result.entries),
        transactions=[entry_out(e) for e in result.entries],
        missing_recipes=[
            OrderLineOut(
                menu_item_id=line.menu_item_id,
                menu_item_variant_id=line.menu_item_variant_id,
                quantity=line.quantity,
            )
            for line in result.missing_recipes
        ],
    )


async def _transaction_page(
    db: AsyncSession,
    *,
    branch_id: UUID,
    transaction_type: Optional[TransactionType],
    ingredient_id: Optional[UUID],
    order_id: Optional[UUID],
    limit: int,
    offset: int,
) -> TransactionPage:
    rows, total = await list_transactions(
        db,
        branch_id=branch_id,
        transaction_type=transaction_type,
        ingredient_id=ingredient_id,
        order_id=order_id,
        limit=limit,
        offset=offset,
    )
    items = [
        TransactionOut(
            id=t.id,
            branch_id=t.branch_id,
            ingredient_id=t.ingredient_id,
            ingredient_name=ing.name if ing else None,
            unit=ing.unit if ing else None,
            transaction_type=t.transaction_type,
            quantity_change=float(t.quantity_change),
            stock_before=float(t.stock_before),
            stock_after=float(t.stock_after),
            order_id=t.order_id,
            reason=t.reason,
            created_by=t.created_by,
            created_at=t.created_at,
        )
        for (t, ing) in rows
    ]
    return TransactionPage(
        items=items,
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
    )


@router.get("/", response_model=List[InventoryRowOut])
async def get_inventory(
    branch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    """Every ingredient with this branch's stock and its alert status."""
    rows = await LowStockMonitor(db).overview(branch_id)
    return [
        InventoryRowOut(
            ingredient_id=r["ingredient_id"],
            ingredient_name=r["ingredient_name"],
            unit=r["unit"],
            current_stock=float(r["current_stock"]),
            reorder_threshold=float(r["reorder_threshold"]),
            tracked=r["tracked"],
            last_restock_at=r["last_restock_at"],
            status=r["status"].value,
        )
        for r in rows
    ]


@router.post("/restock", response_model=LedgerEntryOut, status_code=status.HTTP_201_CREATED)
async def restock(payload: RestockRequest, ledger: StockLedger = Depends(get_ledger)):
    entry = await ledger.restock(
        payload.branch_id,
        payload.ingredient_id,
        payload.quantity,
        reason=payload.reason,
        actor=payload.actor_id,
        supplier=payload.supplier,
    )
    return entry_out(entry)


@router.post("/waste", response_model=LedgerEntryOut, status_code=status.HTTP_201_CREATED)
async def record_waste(payload: WasteRequest, ledger: StockLedger = Depends(get_ledger)):
    entry = await ledger.record_waste(
        payload.branch_id,
        payload.ingredient_id,
        payload.quantity,
        payload.reason,
        payload.actor_id,
    )
    return entry_out(entry)


@router.get("/waste", response_model=TransactionPage)
async def list_waste(
    branch_id: UUID,
    limit: int = Query(settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
):
    return await _transaction_page(
        db,
        branch_id=branch_id,
        transaction_type=TransactionType.WASTE,
        ingredient_id=None,
        order_id=None,
        limit=limit,
        offset=offset,
    )


@router.post("/adjust", response_model=LedgerEntryOut, status_code=status.HTTP_201_CREATED)
async def adjust_stock(payload: AdjustRequest, ledger: StockLedger = Depends(get_ledger)):
    if payload.counted_stock is not None:
        entry = await ledger.adjust_to(
            payload.branch_id, payload.ingredient_id, payload.counted_stock, payload.reason, payload.actor_id
        )
    else:
        entry = await ledger.adjust(
            payload.branch_id, payload.ingredient_id, payload.quantity_change, payload.reason, payload.actor_id
        )
    return entry_out(entry)


@router.post("/sales", response_model=SaleDeductionOut, status_code=status.HTTP_201_CREATED)
async def deduct_sale(
    payload: SaleDeductionRequest,
    deductor: SaleDeductor = Depends(get_sale_deductor),
):
    """
    Deduct stock for a completed order.

    Best effort across ingredients: each ingredient is its own atomic write. On a
    partial failure the response is 500 and lists the transaction ids already applied.
    """
    if payload.items is not None:
        result = await deductor.deduct_resolved(
            payload.branch_id,
            [(it.ingredient_id, it.quantity) for it in payload.items],
            payload.order_id,
            payload.actor_id,
        )
    else:
        result = await deductor.deduct_order(payload.order_id, payload.actor_id)
    return _sale_out(result)


@router.get("/low-stock", response_model=LowStockResponse)
async def low_stock(branch_id: UUID, db: AsyncSession = Depends(get_async_session)):
    report = await LowStockMonitor(db).alerts(branch_id)
    return LowStockResponse(
        branch_id=branch_id,
        alerts=[
            LowStockAlertOut(
                ingredient_id=a["ingredient_id"],
                ingredient_name=a["ingredient_name"],
                unit=a["unit"],
                current_stock=float(a["current_stock"]),
                reorder_threshold=float(a["reorder_threshold"]),
                deficit=float(a["deficit"]),
                urgency=a["urgency"].value,
            )
            for a in report["alerts"]
        ],
        summary=LowStockSummary(**report["summary"]),
    )


@router.get("/transactions", response_model=TransactionPage)
async def get_transactions(
    branch_id: UUID,
    type: Optional[str] = None,
    ingredient_id: Optional[UUID] = None,
    order_id: Optional[UUID] = None,
    limit: int = Query(settings.default_page_limit, ge=1, le=settings.max_page_limit),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_async_session),
):
    return await _transaction_page(
        db,
        branch_id=branch_id,
        transaction_type=parse_transaction_type(type),
        ingredient_id=ingredient_id,
        order_id=order_id,
        limit=limit,
        offset=offset,
    )


@router.get("/audit", response_model=ReplayReportOut)
async def audit_ledger(branch_id: UUID, ingredient_id: UUID, ledger: StockLedger = Depends(get_ledger)):
    """Replay the transaction log for one ingredient and compare it with current stock."""
    report = await ledger.replay(branch_id, ingredient_id)
    return ReplayReportOut(
        branch_id=report.branch_id,
        ingredient_id=report.ingredient_id,
        transactions=report.transactions,
        replayed_stock=float(report.replayed_stock),
        current_stock=float(report.current_stock),
        consistent=report.consistent,
        broken_rows=report.broken_rows,
    )
