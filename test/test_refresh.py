"""Tests for the refresh executor."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from conftest import Counter
from flexible_cache.refresh import LockOptions, RefreshExecutor, RefreshTask, parse_lock
from flexible_cache.timestamps import TimestampStore


def _task(store, compute, created_at, lock=None, key="k", stale=10):
    return RefreshTask(
        key=key,
        compute=compute,
        store=store,
        stale_seconds=stale,
        created_at=created_at,
        lock=lock,
    )


class TestParseLock:
    def test_none(self):
        assert parse_lock(None) is None

    def test_dict(self):
        options = parse_lock({"wait_seconds": 3})
        assert options == LockOptions(wait_seconds=3, lease_seconds=10)

    def test_instance_passthrough(self):
        options = LockOptions(lease_seconds=5)
        assert parse_lock(options) is options

    def test_rejects_negative_wait(self):
        with pytest.raises(ValidationError):
            parse_lock({"wait_seconds": -1})


class TestRefreshExecutor:
    def _seed(self, store, clock, value="old"):
        executor = RefreshExecutor(clock=clock)
        created_at = executor.commit(store, "k", value, 10)
        return executor, created_at

    def test_commit_writes_value_and_timestamp(self, store, clock):
        executor, created_at = self._seed(store, clock)
        assert created_at == 1000
        assert store.get("k") == "old"
        assert TimestampStore(store).get("k") == 1000

    def test_run_refreshes(self, store, clock):
        executor, created_at = self._seed(store, clock)
        clock.advance(7)
        compute = Counter("new")
        assert executor.run(_task(store, compute, created_at)) is True
        assert compute.calls == 1
        assert store.get("k") == "new"
        assert TimestampStore(store).get("k") == 1007

    def test_commit_ttl_is_stale_seconds(self, store, clock):
        executor, created_at = self._seed(store, clock)
        executor.run(_task(store, Counter("new"), created_at, stale=30))
        clock.advance(30)
        assert store.get("k") == "new"
        clock.advance(1)
        assert store.get("k") is None
        assert TimestampStore(store).get("k") is None

    def test_skips_when_timestamp_moved(self, store, clock):
        executor, created_at = self._seed(store, clock)
        clock.advance(7)
        # Another writer refreshed in the meantime
        store.put("k", "other-writer", 10)
        TimestampStore(store).set("k", 1007, 10)
        compute = Counter("mine")
        assert executor.run(_task(store, compute, created_at)) is False
        assert compute.calls == 0
        assert store.get("k") == "other-writer"

    def test_skips_when_timestamp_vanished(self, store, clock):
        executor, created_at = self._seed(store, clock)
        TimestampStore(store).forget("k")
        compute = Counter("mine")
        assert executor.run(_task(store, compute, created_at)) is False
        assert compute.calls == 0

    def test_compute_failure_leaves_record(self, store, clock):
        executor, created_at = self._seed(store, clock)
        clock.advance(7)

        def boom():
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            executor.run(_task(store, boom, created_at))
        assert store.get("k") == "old"
        assert TimestampStore(store).get("k") == 1000

    def test_lock_acquired_and_released(self, store, clock):
        executor, created_at = self._seed(store, clock)
        compute = Counter("new")
        lock = LockOptions(wait_seconds=0, lease_seconds=10)
        assert executor.run(_task(store, compute, created_at, lock=lock)) is True
        # Released: can be taken again
        assert store.acquire_lock(executor.lock_name("k"), 0, 10) is not None

    def test_lock_held_elsewhere_skips(self, store, clock):
        executor, created_at = self._seed(store, clock)
        store.acquire_lock(executor.lock_name("k"), 0, 60)
        compute = Counter("new")
        assert executor.run(_task(store, compute, created_at, lock=LockOptions())) is False
        assert compute.calls == 0
        assert store.get("k") == "old"

    def test_lock_released_on_compute_failure(self, store, clock):
        executor, created_at = self._seed(store, clock)

        def boom():
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError):
            executor.run(_task(store, boom, created_at, lock=LockOptions()))
        assert store.acquire_lock(executor.lock_name("k"), 0, 10) is not None

    def test_lock_released_when_guard_skips(self, store, clock):
        executor, created_at = self._seed(store, clock)
        spy = MagicMock(wraps=store)
        spy.name = store.name
        executor.run(_task(spy, Counter(), created_at + 1, lock=LockOptions()))
        spy.release_lock.assert_called_once()

    def test_lock_name(self):
        assert RefreshExecutor().lock_name("k") == "cache:flexible:lock:k"
        assert RefreshExecutor(namespace="app").lock_name("k") == "app:lock:k"
