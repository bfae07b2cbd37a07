"""
operator_client.py

Small HTTP client for the branch inventory API, for back-office scripts and
chat bots that record deliveries, waste and stock counts.

What it provides:
- A thin wrapper over `requests` that raises ApiError on any 4xx/5xx
- Helpers for restock, waste, adjustments (delta or physical count),
  refunds, low-stock alerts and transaction history

Environment variables expected:
- INVENTORY_API_URL: e.g. "https://pos.example.com/api"
- INVENTORY_ACTOR_ID: UUID recorded as created_by on every write

Dependencies:
- requests (pip install requests)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass
class InventoryApiClient:
    base_url: str
    actor_id: str
    timeout: float = 30

    def _request(self, method: str, path: str, *, json: Any = None, params: Dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        resp = requests.request(
            method,
            url,
            json=json,
            params=params,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )

        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            raise ApiError(
                f"{method} {path} failed ({resp.status_code}): {resp.text}",
                status_code=resp.status_code,
                payload=payload,
            )

        if resp.status_code == 204:
            return None
        return resp.json()

    # ----------------------------
    # Stock movements
    # ----------------------------

    def restock(
        self,
        *,
        branch_id: str,
        ingredient_id: str,
        quantity: float,
        supplier: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Any:
        """Calls: POST /inventory/restock"""
        payload = {
            "branch_id": branch_id,
            "ingredient_id": ingredient_id,
            "quantity": quantity,
            "supplier": supplier,
            "reason": reason,
            "actor_id": self.actor_id,
        }
        return self._request("POST", "/inventory/restock", json=payload)

    def record_waste(self, *, branch_id: str, ingredient_id: str, quantity: float, reason: str) -> Any:
        """
        Calls: POST /inventory/waste
        The branch must already track the ingredient (404 otherwise).
        """
        payload = {
            "branch_id": branch_id,
            "ingredient_id": ingredient_id,
            "quantity": quantity,
            "reason": reason,
            "actor_id": self.actor_id,
        }
        return self._request("POST", "/inventory/waste", json=payload)

    def adjust(
        self,
        *,
        branch_id: str,
        ingredient_id: str,
        reason: str,
        quantity_change: Optional[float] = None,
        counted_stock: Optional[float] = None,
    ) -> Any:
        """Calls: POST /inventory/adjust. Pass exactly one of quantity_change / counted_stock."""
        if (quantity_change is None) == (counted_stock is None):
            raise ValueError("pass exactly one of quantity_change or counted_stock")
        payload: Dict[str, Any] = {
            "branch_id": branch_id,
            "ingredient_id": ingredient_id,
            "reason": reason,
            "actor_id": self.actor_id,
        }
        if counted_stock is not None:
            payload["counted_stock"] = counted_stock
        else:
            payload["quantity_change"] = quantity_change
        return self._request("POST", "/inventory/adjust", json=payload)

    def refund_order(self, *, order_id: str, reason: str) -> Any:
        """Calls: POST /orders/refund"""
        payload = {"order_id": order_id, "reason": reason, "actor_id": self.actor_id}
        return self._request("POST", "/orders/refund", json=payload)

    # ----------------------------
    # Reads
    # ----------------------------

    def low_stock(self, *, branch_id: str) -> Any:
        return self._request("GET", "/inventory/low-stock", params={"branch_id": branch_id})

    def transactions(
        self,
        *,
        branch_id: str,
        transaction_type: Optional[str] = None,
        ingredient_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Any:
        params = {
            "branch_id": branch_id,
            "type": transaction_type,
            "ingredient_id": ingredient_id,
            "limit": limit,
            "offset": offset,
        }
        return self._request("GET", "/inventory/transactions", params=params)


def make_client_from_env() -> InventoryApiClient:
    base_url = os.getenv("INVENTORY_API_URL", "").strip()
    actor_id = os.getenv("INVENTORY_ACTOR_ID", "").strip()

    if not base_url:
        raise RuntimeError("Missing INVENTORY_API_URL")
    if not actor_id:
        raise RuntimeError("Missing INVENTORY_ACTOR_ID")

    return InventoryApiClient(base_url=base_url, actor_id=actor_id)


if __name__ == "__main__":
    client = make_client_from_env()

    # Example: print the current alerts for a branch
    # print(client.low_stock(branch_id="00000000-0000-0000-0000-000000000000"))

    print("OK: client configured. Uncomment examples to run.")
