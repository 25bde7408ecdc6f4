"""
Deferred refresh tasks and the executor that runs them.

A task carries everything needed to recompute one key later: the compute
function, the store selected when it was scheduled, and the created-at
snapshot the refresh must still match before it may commit.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, Field

from flexible_cache.stores import ValueStore
from flexible_cache.timestamps import DEFAULT_NAMESPACE, TimestampStore

logger = logging.getLogger(__name__)


class LockOptions(BaseModel):
    """Mutual exclusion settings for a deferred refresh."""

    wait_seconds: float = Field(default=0, ge=0)
    lease_seconds: int = Field(default=10, ge=1)


LockSpec = Union[LockOptions, dict, None]


def parse_lock(lock: LockSpec) -> Optional[LockOptions]:
    """Accept LockOptions, a plain dict of its fields, or None."""
    if lock is None or isinstance(lock, LockOptions):
        return lock
    return LockOptions.model_validate(lock)


@dataclass(frozen=True)
class RefreshTask:
    """One pending recomputation of a stale key."""

    key: str
    compute: Callable[[], Any]
    store: ValueStore
    stale_seconds: int
    created_at: Optional[int]  # snapshot read when the task was scheduled
    lock: Optional[LockOptions] = None


class RefreshExecutor:
    """Runs refresh tasks and commits values with their created-at stamp."""

    def __init__(
        self,
        namespace: str = DEFAULT_NAMESPACE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.namespace = namespace
        self._clock = clock

    def lock_name(self, key: str) -> str:
        return f"{self.namespace}:lock:{key}"

    def timestamps(self, store: ValueStore) -> TimestampStore:
        return TimestampStore(store, self.namespace)

    def commit(
        self, store: ValueStore, key: str, value: Any, stale_seconds: int
    ) -> int:
        """Write value and created-at (now) with the same TTL. Returns created-at."""
        created_at = int(self._clock())
        store.put(key, value, stale_seconds)
        self.timestamps(store).set(key, created_at, stale_seconds)
        return created_at

    def run(self, task: RefreshTask) -> bool:
        """
        Refresh one key. Returns True if a new value was committed.

        Returns False without computing when the lock is held elsewhere or
        the created-at stamp moved since scheduling. Errors raised by the
        compute function propagate after the lock is released.
        """
        handle = None
        if task.lock is not None:
            handle = task.store.acquire_lock(
                self.lock_name(task.key),
                task.lock.wait_seconds,
                task.lock.lease_seconds,
            )
            if handle is None:
                logger.debug("Refresh of %s skipped: lock unavailable", task.key)
                return False

        try:
            current = self.timestamps(task.store).get(task.key)
            if current != task.created_at:
                logger.debug(
                    "Refresh of %s skipped: created-at moved %s -> %s",
                    task.key,
                    task.created_at,
                    current,
                )
                return False

            value = task.compute()
            created_at = self.commit(task.store, task.key, value, task.stale_seconds)
            logger.info(
                "Refreshed %s on store %s (created_at=%d)",
                task.key,
                task.store.name,
                created_at,
            )
            return True
        finally:
            if handle is not None:
                task.store.release_lock(handle)
