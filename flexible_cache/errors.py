"""
Exceptions raised by the flexible cache.

A caller's compute function errors are never wrapped on the synchronous
path; they propagate unchanged. Deferred refresh failures are collected
into RefreshError by the scheduler.
"""

from __future__ import annotations

from typing import Optional


class FlexibleCacheError(Exception):
    """Base class for flexible cache errors."""


class StoreUnavailable(FlexibleCacheError):
    """Raised when a backing store call fails."""

    def __init__(self, message: str, store: Optional[str] = None):
        super().__init__(message)
        self.store = store


class StoreNotConfigured(FlexibleCacheError):
    """Raised when a store name is not registered."""


class RefreshError(FlexibleCacheError):
    """Raised by flush() when one or more deferred refreshes failed."""

    def __init__(self, failures: list[tuple[str, BaseException]]):
        keys = ", ".join(key for key, _ in failures)
        super().__init__(f"{len(failures)} refresh(es) failed: {keys}")
        self.failures = failures
