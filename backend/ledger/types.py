from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID


class TransactionType(str, Enum):
    SALE = "SALE"
    RESTOCK = "RESTOCK"
    WASTE = "WASTE"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"


class StockStatus(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class IngredientInfo:
    id: UUID
    name: str
    unit: str
    cost_per_unit: Decimal
    reorder_threshold: Decimal


@dataclass(frozen=True)
class OrderLine:
    menu_item_id: UUID
    menu_item_variant_id: Optional[UUID]
    quantity: int


@dataclass(frozen=True)
class OrderSnapshot:
    id: UUID
    branch_id: UUID
    order_number: str
    is_refunded: bool
    items: List[OrderLine]


@dataclass(frozen=True)
class LedgerEntry:
    """What one ledger mutation wrote: the transaction row plus the resulting stock status."""
    transaction_id: UUID
    branch_id: UUID
    ingredient_id: UUID
    transaction_type: TransactionType
    quantity_change: Decimal
    stock_before: Decimal
    stock_after: Decimal
    sequence: int
    order_id: Optional[UUID]
    reason: Optional[str]
    created_by: UUID
    created_at: datetime
    status: StockStatus


@dataclass
class LineResolution:
    """Recipe-resolved consumption for a set of order lines, summed per ingredient."""
    totals: Dict[UUID, Decimal] = field(default_factory=dict)
    missing: List[OrderLine] = field(default_factory=list)


@dataclass
class SaleResult:
    order_id: UUID
    branch_id: UUID
    entries: List[LedgerEntry] = field(default_factory=list)
    missing_recipes: List[OrderLine] = field(default_factory=list)


@dataclass
class RefundResult:
    order: OrderSnapshot
    reason: str
    entries: List[LedgerEntry] = field(default_factory=list)
    skipped_ingredients: List[UUID] = field(default_factory=list)


@dataclass
class ReplayReport:
    branch_id: UUID
    ingredient_id: UUID
    transactions: int
    replayed_stock: Decimal
    current_stock: Decimal
    broken_rows: List[UUID] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.broken_rows and self.replayed_stock == self.current_stock
