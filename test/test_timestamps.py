"""Tests for created-at companion entries."""

from flexible_cache.timestamps import TimestampStore


class TestTimestampStore:
    def test_companion_key(self, store):
        stamps = TimestampStore(store)
        assert stamps.key_for("test-key") == "cache:flexible:created:test-key"

    def test_custom_namespace(self, store):
        stamps = TimestampStore(store, namespace="app")
        assert stamps.key_for("k") == "app:created:k"

    def test_set_and_get(self, store):
        stamps = TimestampStore(store)
        stamps.set("k", 1234, 10)
        assert stamps.get("k") == 1234
        assert store.get("cache:flexible:created:k") == 1234

    def test_missing(self, store):
        assert TimestampStore(store).get("k") is None

    def test_does_not_touch_value_key(self, store):
        store.put("k", "value", 10)
        TimestampStore(store).set("k", 1, 10)
        assert store.get("k") == "value"

    def test_expires_with_ttl(self, store, clock):
        stamps = TimestampStore(store)
        stamps.set("k", 1000, 10)
        clock.advance(11)
        assert stamps.get("k") is None

    def test_string_timestamp_is_parsed(self, store):
        store.put("cache:flexible:created:k", "1700", 10)
        assert TimestampStore(store).get("k") == 1700

    def test_garbage_is_treated_as_missing(self, store):
        store.put("cache:flexible:created:k", "not-a-number", 10)
        assert TimestampStore(store).get("k") is None
        store.put("cache:flexible:created:k", {"x": 1}, 10)
        assert TimestampStore(store).get("k") is None

    def test_stores_are_independent(self, store, store2):
        TimestampStore(store2).set("k", 1000, 10)
        assert TimestampStore(store).get("k") is None
        assert TimestampStore(store2).get("k") == 1000
