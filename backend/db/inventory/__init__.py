"""
Branch inventory ledger.

Models:
- BranchInventory (current stock per branch per ingredient, the snapshot)
- InventoryTransaction (append-only signed deltas; replaying them from 0 yields the snapshot)
"""

from .stock import BranchInventory
from .transaction import InventoryTransaction, TRANSACTION_TYPES

__all__ = ["BranchInventory", "InventoryTransaction", "TRANSACTION_TYPES"]
