"""
Tests for services/cache_service.py — read-through topic cache.
"""
from services import cache_service
from services.cache_service import NullCache, TopicCache


class Loader:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


def test_second_read_is_served_from_cache():
    cache = TopicCache(ttl_seconds=60)
    loader = Loader([1, 2])
    assert cache.get("sprint:1:goals", loader) == [1, 2]
    assert cache.get("sprint:1:goals", loader) == [1, 2]
    assert loader.calls == 1
    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_keys_under_one_topic_are_independent():
    cache = TopicCache(ttl_seconds=60)
    week1, week2 = Loader("a"), Loader("b")
    assert cache.get("promise:1:logs", week1, key="w1") == "a"
    assert cache.get("promise:1:logs", week2, key="w2") == "b"
    assert cache.get_stats()["total_entries"] == 2


def test_invalidate_drops_whole_topic_only():
    cache = TopicCache(ttl_seconds=60)
    first, other = Loader("x"), Loader("y")
    cache.get("user:1:promise-logs", first, key=1)
    cache.get("user:1:promise-logs", first, key=2)
    cache.get("user:2:promise-logs", other)

    cache.invalidate("user:1:promise-logs", "never-cached")

    cache.get("user:1:promise-logs", first, key=1)
    cache.get("user:2:promise-logs", other)
    assert first.calls == 3
    assert other.calls == 1


def test_zero_ttl_never_stores():
    cache = TopicCache(ttl_seconds=0)
    loader = Loader(5)
    cache.get("t", loader)
    cache.get("t", loader)
    assert loader.calls == 2
    assert cache.get_stats()["total_topics"] == 0


def test_expired_entries_reload_and_are_evicted(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_service.time, "time", lambda: now[0])
    cache = TopicCache(ttl_seconds=60)
    loader = Loader("v")

    cache.get("t", loader)
    now[0] += 61
    cache.get("t", loader)
    assert loader.calls == 2

    now[0] += 61
    cache.clear_expired()
    assert cache.get_stats()["total_entries"] == 0


def test_null_cache_always_loads():
    cache = NullCache()
    loader = Loader(1)
    cache.get("t", loader)
    cache.get("t", loader)
    cache.invalidate("t")
    assert loader.calls == 2


def test_invalidation_during_load_is_not_overwritten():
    cache = TopicCache(ttl_seconds=60)
    store = {"goals": "old"}

    def load_then_write():
        seen = store["goals"]
        # a writer commits and invalidates while this read is in flight
        store["goals"] = "new"
        cache.invalidate("sprint:1:goals")
        return seen

    assert cache.get("sprint:1:goals", load_then_write) == "old"
    assert cache.get("sprint:1:goals", lambda: store["goals"]) == "new"


def test_clear_during_load_is_not_overwritten():
    cache = TopicCache(ttl_seconds=60)

    def load_then_clear():
        cache.clear()
        return "stale"

    cache.get("t", load_then_clear)
    assert cache.get_stats()["total_entries"] == 0
