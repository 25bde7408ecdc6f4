"""
Value store backends.

A store holds values by string key with a per-entry TTL and offers a
best-effort named lock. MemoryStore keeps everything in-process; RedisStore
shares values and locks across processes.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

import redis
from redis.exceptions import LockError, RedisError

from flexible_cache.errors import StoreNotConfigured, StoreUnavailable

logger = logging.getLogger(__name__)

# Poll interval while waiting on a held in-process lock.
_LOCK_POLL_SECONDS = 0.05


class ValueStore(Protocol):
    """What the flexible cache needs from a backend."""

    name: str

    def get(self, key: str) -> Any: ...

    def put(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def forget(self, key: str) -> bool: ...

    def acquire_lock(
        self, name: str, wait_seconds: float, lease_seconds: int
    ) -> Optional[Any]: ...

    def release_lock(self, handle: Any) -> None: ...


@dataclass
class StoreEntry:
    """A stored value with its absolute expiry."""

    value: Any
    expires_at: float  # clock() value after which the entry is gone

    def expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class MemoryLock:
    """Handle returned by MemoryStore.acquire_lock."""

    name: str
    token: str


class MemoryStore:
    """
    In-process store with per-entry TTL.

    - get(): returns the value, or None once the entry's TTL has passed.
    - put(): stores a value until now + ttl_seconds (ttl <= 0 forgets it).
    - acquire_lock(): lease-based lock, only exclusive within this process.
    """

    def __init__(
        self, name: str = "memory", clock: Callable[[], float] = time.time
    ) -> None:
        self.name = name
        self._entries: dict[str, StoreEntry] = {}
        self._locks: dict[str, tuple[str, float]] = {}
        self._mutex = threading.Lock()
        self._clock = clock  # overridable for testing

    def get(self, key: str) -> Any:
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            self.forget(key)
            return
        with self._mutex:
            self._entries[key] = StoreEntry(
                value=value, expires_at=self._clock() + ttl_seconds
            )

    def forget(self, key: str) -> bool:
        with self._mutex:
            return self._entries.pop(key, None) is not None

    def flush(self) -> None:
        """Remove all entries."""
        with self._mutex:
            self._entries.clear()

    def acquire_lock(
        self, name: str, wait_seconds: float, lease_seconds: int
    ) -> Optional[MemoryLock]:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + max(0.0, wait_seconds)
        while True:
            if self._try_lock(name, token, lease_seconds):
                return MemoryLock(name=name, token=token)
            if time.monotonic() >= deadline:
                return None
            time.sleep(_LOCK_POLL_SECONDS)

    def _try_lock(self, name: str, token: str, lease_seconds: int) -> bool:
        with self._mutex:
            now = self._clock()
            held = self._locks.get(name)
            if held is not None and held[1] > now:
                return False
            self._locks[name] = (token, now + lease_seconds)
            return True

    def release_lock(self, handle: MemoryLock) -> None:
        with self._mutex:
            held = self._locks.get(handle.name)
            if held is None or held[0] != handle.token:
                logger.warning("Lock %s was no longer held on release", handle.name)
                return
            del self._locks[handle.name]


class RedisStore:
    """
    Store backed by a Redis client.

    Values are JSON-encoded and written with SETEX. Locks use redis-py's
    Lock so they are shared by every process talking to the same server.
    Client failures are raised as StoreUnavailable.
    """

    def __init__(
        self, client: redis.Redis, name: str = "redis", prefix: str = ""
    ) -> None:
        self.name = name
        self._redis = client
        self.prefix = prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        name: str = "redis",
        prefix: str = "",
        password: Optional[str] = None,
    ) -> "RedisStore":
        client = redis.Redis.from_url(url, password=password, decode_responses=False)
        return cls(client, name=name, prefix=prefix)

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _fail(self, op: str, key: str, exc: RedisError) -> StoreUnavailable:
        logger.error("Redis %s failed on store %s for %s: %s", op, self.name, key, exc)
        return StoreUnavailable(f"Redis {op} failed: {exc}", store=self.name)

    def get(self, key: str) -> Any:
        try:
            data = self._redis.get(self._make_key(key))
        except RedisError as exc:
            raise self._fail("get", key, exc) from exc
        if data is None:
            return None
        return json.loads(data)

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            self.forget(key)
            return
        data = json.dumps(value)
        try:
            self._redis.setex(self._make_key(key), ttl_seconds, data)
        except RedisError as exc:
            raise self._fail("setex", key, exc) from exc

    def forget(self, key: str) -> bool:
        try:
            return bool(self._redis.delete(self._make_key(key)))
        except RedisError as exc:
            raise self._fail("delete", key, exc) from exc

    def acquire_lock(
        self, name: str, wait_seconds: float, lease_seconds: int
    ) -> Optional[Any]:
        lock = self._redis.lock(self._make_key(name), timeout=lease_seconds)
        try:
            acquired = lock.acquire(
                blocking=wait_seconds > 0, blocking_timeout=wait_seconds or None
            )
        except RedisError as exc:
            raise self._fail("lock", name, exc) from exc
        return lock if acquired else None

    def release_lock(self, handle: Any) -> None:
        try:
            handle.release()
        except LockError as exc:
            # Lease ran out before release; someone else may hold it now.
            logger.warning("Lock release failed on store %s: %s", self.name, exc)
        except RedisError as exc:
            raise self._fail("unlock", str(handle.name), exc) from exc


class StoreRegistry:
    """Named stores plus the name used when a call does not pick one."""

    def __init__(self, stores: list[ValueStore], default: Optional[str] = None) -> None:
        if not stores:
            raise ValueError("StoreRegistry needs at least one store")
        self._stores = {store.name: store for store in stores}
        self.default = default if default is not None else stores[0].name
        if self.default not in self._stores:
            raise StoreNotConfigured(f"Default store '{self.default}' is not registered")

    def resolve(self, name: Optional[str] = None) -> ValueStore:
        """Return the named store, or the default one for None."""
        if name is None:
            name = self.default
        store = self._stores.get(name)
        if store is None:
            raise StoreNotConfigured(f"Cache store '{name}' is not configured")
        return store

    def names(self) -> list[str]:
        return list(self._stores)
