"""
Process-wide FlexibleCache instance.

Module-level helpers proxy to a single cache so application code can call
`flexible(...)` without passing the instance around.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from flexible_cache.flexible import FlexibleCache, StoreView
from flexible_cache.freshness import Bound
from flexible_cache.refresh import LockSpec

# Global reference, set by configure() or lazily on first use
_cache: Optional[FlexibleCache] = None


def configure(cache: FlexibleCache) -> FlexibleCache:
    """Install `cache` as the process-wide instance."""
    global _cache
    _cache = cache
    return cache


def get_flexible_cache() -> FlexibleCache:
    """Return the process-wide instance, creating a memory-only one if unset."""
    global _cache
    if _cache is None:
        _cache = FlexibleCache()
    return _cache


def reset() -> None:
    global _cache
    _cache = None


def flexible(
    key: str,
    window: Sequence[Bound],
    compute: Callable[[], Any],
    lock: LockSpec = None,
    store: Optional[str] = None,
) -> Any:
    return get_flexible_cache().flexible(key, window, compute, lock=lock, store=store)


def store(name: Optional[str]) -> StoreView:
    return get_flexible_cache().store(name)


def flush() -> int:
    return get_flexible_cache().flush()
