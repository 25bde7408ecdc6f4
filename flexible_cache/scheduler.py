"""
Per-process queue of deferred refreshes.

Tasks wait here until the embedding application flushes, typically once
the current request or job is done. At most one task per key is kept
between flushes; the first one scheduled wins.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from flexible_cache.errors import RefreshError
from flexible_cache.refresh import RefreshExecutor, RefreshTask

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Deduplicating pending set drained by flush()."""

    def __init__(self, executor: RefreshExecutor) -> None:
        self._executor = executor
        self._pending: dict[str, RefreshTask] = {}
        self._mutex = threading.Lock()

    def __len__(self) -> int:
        with self._mutex:
            return len(self._pending)

    def pending_keys(self) -> list[str]:
        with self._mutex:
            return list(self._pending)

    def pending_tasks(self) -> list[RefreshTask]:
        """Snapshot of queued tasks in schedule order."""
        with self._mutex:
            return list(self._pending.values())

    def schedule(self, task: RefreshTask) -> bool:
        """Queue `task` unless one is already pending for its key."""
        with self._mutex:
            if task.key in self._pending:
                logger.debug("Refresh of %s already pending, dropped", task.key)
                return False
            self._pending[task.key] = task
        logger.debug("Scheduled refresh of %s", task.key)
        return True

    def flush(self) -> int:
        """
        Run every pending task in schedule order. Returns how many ran.

        A failing task does not stop the rest. Once all have run, failures
        are raised together as RefreshError.
        """
        with self._mutex:
            tasks, self._pending = list(self._pending.values()), {}

        failures: list[tuple[str, BaseException]] = []
        for task in tasks:
            try:
                self._executor.run(task)
            except Exception as exc:
                logger.warning("Refresh of %s failed: %s", task.key, exc)
                failures.append((task.key, exc))

        if failures:
            raise RefreshError(failures) from failures[0][1]
        return len(tasks)

    @contextmanager
    def window(self) -> Iterator["RefreshScheduler"]:
        """Flush pending refreshes when the block exits, even on error."""
        try:
            yield self
        finally:
            self.flush()
