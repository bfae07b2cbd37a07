from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator


TransactionTypeName = Literal["SALE", "RESTOCK", "WASTE", "REFUND", "ADJUSTMENT"]
StockStatusName = Literal["OK", "WARNING", "CRITICAL"]


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class RestockRequest(BaseModel):
    branch_id: UUID
    ingredient_id: UUID
    quantity: float
    supplier: Optional[str] = None
    reason: Optional[str] = None
    actor_id: UUID

    @field_validator("supplier", "reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class WasteRequest(BaseModel):
    branch_id: UUID
    ingredient_id: UUID
    quantity: float
    # required; blank values are rejected by the ledger with a field-level error
    reason: Optional[str] = None
    actor_id: UUID

    @field_validator("reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class AdjustRequest(BaseModel):
    branch_id: UUID
    ingredient_id: UUID
    quantity_change: Optional[float] = None
    counted_stock: Optional[float] = None
    reason: Optional[str] = None
    actor_id: UUID

    @field_validator("reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)

    @model_validator(mode="after")
    def _exactly_one_amount(self):
        if (self.quantity_change is None) == (self.counted_stock is None):
            raise ValueError("provide exactly one of quantity_change or counted_stock")
        return self


class ResolvedConsumption(BaseModel):
    ingredient_id: UUID
    quantity: float


class SaleDeductionRequest(BaseModel):
    """
    Either just `order_id` (lines are resolved through recipes), or `branch_id`
    plus already-resolved `items`.
    """
    order_id: UUID
    actor_id: UUID
    branch_id: Optional[UUID] = None
    items: Optional[List[ResolvedConsumption]] = None

    @model_validator(mode="after")
    def _resolved_needs_branch(self):
        if self.items is not None and self.branch_id is None:
            raise ValueError("branch_id is required when items are given")
        return self


class LedgerEntryOut(BaseModel):
    transaction_id: UUID
    branch_id: UUID
    ingredient_id: UUID
    transaction_type: TransactionTypeName
    quantity_change: float
    stock_before: float
    stock_after: float
    order_id: Optional[UUID] = None
    reason: Optional[str] = None
    created_by: UUID
    created_at: datetime
    status: StockStatusName


class OrderLineOut(BaseModel):
    menu_item_id: UUID
    menu_item_variant_id: Optional[UUID] = None
    quantity: int


class SaleDeductionOut(BaseModel):
    order_id: UUID
    branch_id: UUID
    transactions_count: int
    transactions: List[LedgerEntryOut]
    missing_recipes: List[OrderLineOut]


class TransactionOut(BaseModel):
    id: UUID
    branch_id: UUID
    ingredient_id: UUID
    ingredient_name: Optional[str] = None
    unit: Optional[str] = None
    transaction_type: TransactionTypeName
    quantity_change: float
    stock_before: float
    stock_after: float
    order_id: Optional[UUID] = None
    reason: Optional[str] = None
    created_by: UUID
    created_at: datetime


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class TransactionPage(BaseModel):
    items: List[TransactionOut]
    pagination: Pagination


class LowStockAlertOut(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    unit: str
    current_stock: float
    reorder_threshold: float
    deficit: float
    urgency: StockStatusName


class LowStockSummary(BaseModel):
    total: int
    critical: int
    warning: int


class LowStockResponse(BaseModel):
    branch_id: UUID
    alerts: List[LowStockAlertOut]
    summary: LowStockSummary


class InventoryRowOut(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    unit: str
    current_stock: float
    reorder_threshold: float
    tracked: bool
    last_restock_at: Optional[datetime] = None
    status: StockStatusName


class ReplayReportOut(BaseModel):
    branch_id: UUID
    ingredient_id: UUID
    transactions: int
    replayed_stock: float
    current_stock: float
    consistent: bool
    broken_rows: List[UUID]
