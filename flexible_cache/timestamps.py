"""Created-at companion entries, kept in the same store as the value."""

from __future__ import annotations

from typing import Optional

from flexible_cache.stores import ValueStore

DEFAULT_NAMESPACE = "cache:flexible"


class TimestampStore:
    """Reads and writes `<namespace>:created:<key>` on one store."""

    def __init__(self, store: ValueStore, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._store = store
        self._namespace = namespace

    def key_for(self, key: str) -> str:
        return f"{self._namespace}:created:{key}"

    def get(self, key: str) -> Optional[int]:
        """Return the created-at instant, or None when absent or unreadable."""
        raw = self._store.get(self.key_for(key))
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw
        # Foreign writers may have stored the timestamp as a string.
        if isinstance(raw, (str, bytes)):
            try:
                return int(raw)
            except ValueError:
                return None
        return None

    def set(self, key: str, instant: int, ttl_seconds: int) -> None:
        self._store.put(self.key_for(key), int(instant), ttl_seconds)

    def forget(self, key: str) -> bool:
        return self._store.forget(self.key_for(key))
