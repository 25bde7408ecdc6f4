"""
Shared test fixtures for flexible-cache.

Provides:
- A controllable clock shared by cache and stores
- Two in-memory stores registered as "memory" (default) and "memory2"
- A FlexibleCache wired to them
"""

import pytest

from flexible_cache import facade
from flexible_cache.flexible import FlexibleCache
from flexible_cache.stores import MemoryStore, StoreRegistry


class FakeClock:
    """Controllable clock for deterministic cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Counter:
    """Compute function that records how often it was called."""

    def __init__(self, value="value"):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return MemoryStore(name="memory", clock=clock)


@pytest.fixture()
def store2(clock):
    return MemoryStore(name="memory2", clock=clock)


@pytest.fixture()
def cache(clock, store, store2):
    registry = StoreRegistry([store, store2], default="memory")
    return FlexibleCache(registry=registry, clock=clock)


@pytest.fixture(autouse=True)
def reset_facade():
    facade.reset()
    yield
    facade.reset()
