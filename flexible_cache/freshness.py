"""
Pure freshness logic.

No I/O. Classifies a cached entry's age against a (fresh, stale) window
and normalizes the window bounds callers pass in.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Sequence, Union

Bound = Union[int, float, timedelta, datetime]


class Freshness(str, Enum):
    MISSING = "missing"
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


def classify(
    now: float,
    created_at: Optional[int],
    fresh_seconds: int,
    stale_seconds: int,
) -> Freshness:
    """
    Classify an entry created at `created_at` as seen at `now`.

    Both boundaries are inclusive: an entry exactly `fresh_seconds` old is
    still fresh, one exactly `stale_seconds` old is still stale.
    """
    if created_at is None:
        return Freshness.MISSING

    fresh_seconds = max(0, fresh_seconds)
    stale_seconds = max(0, stale_seconds)
    elapsed = now - created_at

    if elapsed > stale_seconds:
        return Freshness.EXPIRED
    if elapsed <= fresh_seconds:
        return Freshness.FRESH
    return Freshness.STALE


def to_seconds(bound: Bound, now: float) -> int:
    """
    Convert one window bound to whole seconds from `now`.

    Numbers are relative seconds, timedeltas are relative durations and
    datetimes are absolute instants. Negative results clamp to zero.
    """
    if isinstance(bound, bool):
        raise TypeError("Window bound must be a number, timedelta or datetime, not bool")
    if isinstance(bound, datetime):
        # Both sides in whole seconds, like stored created-at stamps.
        seconds = int(bound.timestamp()) - int(now)
    elif isinstance(bound, timedelta):
        seconds = bound.total_seconds()
    elif isinstance(bound, (int, float)):
        seconds = bound
    else:
        raise TypeError(
            f"Window bound must be a number, timedelta or datetime, got {type(bound).__name__}"
        )
    return max(0, int(seconds))


def normalize_window(window: Sequence[Bound], now: float) -> tuple[int, int]:
    """Return (fresh_seconds, stale_seconds) for a two-element window."""
    if isinstance(window, (str, bytes)) or len(window) != 2:
        raise ValueError("Window must be a (fresh, stale) pair")
    fresh, stale = window
    return to_seconds(fresh, now), to_seconds(stale, now)
