"""
Read-through cache capability for reference data (ingredients, branches).

The cache is injected where reads happen. Stock writes and stock status never
consult it: they re-read the ingredient row in the same transaction.
"""

from typing import Any, Dict, Optional, Protocol


class Cache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def invalidate(self, key: Optional[str] = None) -> None: ...


class NullCache:
    """Never stores anything; every read goes to the database."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any) -> None:
        return None

    def invalidate(self, key: Optional[str] = None) -> None:
        return None


class MemoryCache:
    """Process-local dict cache. No TTL: only for deployments that invalidate after catalog edits."""

    def __init__(self) -> None:
        self._store: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._store.get(key)

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._store.clear()
        else:
            self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)


def build_cache(kind: str) -> Cache:
    if (kind or "").strip().lower() == "none":
        return NullCache()
    return MemoryCache()
