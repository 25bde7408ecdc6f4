"""
Stale-while-revalidate entry point.

FlexibleCache reads a value and its created-at stamp, classifies their age
and either returns the value, returns it while scheduling a deferred
refresh, or recomputes it on the spot.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Sequence

from flexible_cache.freshness import Bound, Freshness, classify, normalize_window
from flexible_cache.refresh import LockSpec, RefreshExecutor, RefreshTask, parse_lock
from flexible_cache.scheduler import RefreshScheduler
from flexible_cache.stores import MemoryStore, StoreRegistry
from flexible_cache.timestamps import DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)


class FlexibleCache:
    """
    Main service class.

    Store selection is a per-call argument: `store=None` always means the
    registry default, so a choice made for one call never carries over.
    """

    def __init__(
        self,
        registry: Optional[StoreRegistry] = None,
        namespace: str = DEFAULT_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if registry is None:
            registry = StoreRegistry([MemoryStore(clock=clock)])
        self.registry = registry
        self._clock = clock
        self.executor = RefreshExecutor(namespace=namespace, clock=clock)
        self.scheduler = RefreshScheduler(self.executor)

    def flexible(
        self,
        key: str,
        window: Sequence[Bound],
        compute: Callable[[], Any],
        lock: LockSpec = None,
        store: Optional[str] = None,
    ) -> Any:
        """
        Return the value for `key`, computing or scheduling a refresh as needed.

        Args:
            key: Cache key.
            window: (fresh, stale) as seconds, timedeltas or absolute datetimes.
            compute: Zero-argument function producing the value.
            lock: Optional LockOptions (or dict) guarding the deferred refresh.
            store: Store name for this call only; None uses the default.
        """
        now = self._clock()
        fresh_seconds, stale_seconds = normalize_window(window, now)
        lock_options = parse_lock(lock)
        backend = self.registry.resolve(store)

        value = backend.get(key)
        created_at = self.executor.timestamps(backend).get(key)
        state = classify(now, created_at, fresh_seconds, stale_seconds)
        if value is None:
            state = Freshness.MISSING

        if state in (Freshness.MISSING, Freshness.EXPIRED):
            logger.debug("%s is %s on store %s, computing", key, state.value, backend.name)
            value = compute()
            self.executor.commit(backend, key, value, stale_seconds)
            return value

        if state is Freshness.STALE:
            self.scheduler.schedule(
                RefreshTask(
                    key=key,
                    compute=compute,
                    store=backend,
                    stale_seconds=stale_seconds,
                    created_at=created_at,
                    lock=lock_options,
                )
            )
        return value

    def store(self, name: Optional[str]) -> "StoreView":
        """Bind a store name for calls made through the returned view."""
        return StoreView(self, name)

    def flush(self) -> int:
        """Run all pending refreshes. See RefreshScheduler.flush."""
        return self.scheduler.flush()

    def forget(self, key: str, store: Optional[str] = None) -> bool:
        """Remove a value and its created-at stamp."""
        backend = self.registry.resolve(store)
        self.executor.timestamps(backend).forget(key)
        return backend.forget(key)


class StoreView:
    """FlexibleCache calls pinned to one store."""

    def __init__(self, cache: FlexibleCache, name: Optional[str]) -> None:
        self._cache = cache
        self.name = name

    def flexible(
        self,
        key: str,
        window: Sequence[Bound],
        compute: Callable[[], Any],
        lock: LockSpec = None,
    ) -> Any:
        return self._cache.flexible(key, window, compute, lock=lock, store=self.name)

    def forget(self, key: str) -> bool:
        return self._cache.forget(key, store=self.name)
