from pydantic import BaseModel, field_validator
from typing import List, Optional
from uuid import UUID

from schemas.inventory import LedgerEntryOut


class RefundRequest(BaseModel):
    order_id: UUID
    reason: Optional[str] = None
    actor_id: UUID

    @field_validator("reason")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class RefundOut(BaseModel):
    order_id: UUID
    order_number: str
    branch_id: UUID
    reason: str
    transactions_count: int
    transactions: List[LedgerEntryOut]
    skipped_ingredient_ids: List[UUID]
