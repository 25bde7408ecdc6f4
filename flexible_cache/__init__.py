"""Stale-while-revalidate caching over pluggable key/value stores."""

from flexible_cache.errors import (
    FlexibleCacheError,
    RefreshError,
    StoreNotConfigured,
    StoreUnavailable,
)
from flexible_cache.flexible import FlexibleCache, StoreView
from flexible_cache.freshness import Freshness, classify, normalize_window
from flexible_cache.refresh import LockOptions, RefreshExecutor, RefreshTask
from flexible_cache.scheduler import RefreshScheduler
from flexible_cache.stores import MemoryStore, RedisStore, StoreRegistry, ValueStore

__all__ = [
    "FlexibleCache",
    "FlexibleCacheError",
    "Freshness",
    "LockOptions",
    "MemoryStore",
    "RedisStore",
    "RefreshError",
    "RefreshExecutor",
    "RefreshScheduler",
    "RefreshTask",
    "StoreNotConfigured",
    "StoreRegistry",
    "StoreUnavailable",
    "StoreView",
    "ValueStore",
    "classify",
    "normalize_window",
]
