from typing import List, Optional
from uuid import UUID


class LedgerError(Exception):
    """Base class for inventory ledger failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Rejected input. Raised before any storage write."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AlreadyRefundedError(ValidationError):
    def __init__(self, order_id: UUID):
        super().__init__(f"Order {order_id} is already refunded", field="order_id")
        self.order_id = order_id


class AlreadyDeductedError(ValidationError):
    def __init__(self, order_id: UUID):
        super().__init__(f"Stock for order {order_id} was already deducted", field="order_id")
        self.order_id = order_id


class NotFoundError(LedgerError):
    """A referenced branch, ingredient, order or inventory row is absent."""


class StorageError(LedgerError):
    """The atomic row + transaction write failed; nothing was persisted for that ingredient."""


class PartialApplicationError(StorageError):
    """
    A multi-ingredient sale or refund stopped part way.

    `applied` holds the ledger entries that are already durable; `failed_ingredient_id`
    is the ingredient whose write failed. Callers reconcile through the transaction log.
    """

    def __init__(self, message: str, applied: List, failed_ingredient_id: Optional[UUID] = None):
        super().__init__(message)
        self.applied = list(applied)
        self.failed_ingredient_id = failed_ingredient_id
