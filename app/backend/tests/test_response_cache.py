import sys
import os
import time
import threading
import pytest

# Add backend to path so we can import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cache.response_cache import MISS, ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(clock=clock)


def test_get_after_set_returns_value(cache):
    cache.set("k", {"products": []}, 100)
    assert cache.get("k") == {"products": []}


def test_missing_key_is_miss(cache):
    assert cache.get("nope") is MISS
    assert not MISS


def test_none_value_is_not_a_miss(cache):
    cache.set("k", None, 1000)
    assert cache.get("k") is None


def test_stale_entry_is_miss_before_sweep(cache, clock):
    """Verify lazy eviction: an entry at or past its TTL reads as absent."""
    cache.set("k", "v", 60_000)
    clock.advance(59.5)
    assert cache.get("k") == "v"
    clock.advance(0.5)
    assert cache.get("k") is MISS
    assert cache.stats()["count"] == 0


def test_overwrite_wins(cache):
    cache.set("k", "v1", 60_000)
    cache.set("k", "v2", 60_000)
    assert cache.get("k") == "v2"
    assert cache.stats() == {"count": 1, "keys": ["k"]}


def test_clear_removes_everything(cache):
    for i in range(5):
        cache.set(f"/api/products?page={i}", i, 60_000)
    cache.clear()
    for i in range(5):
        assert cache.get(f"/api/products?page={i}") is MISS
    assert cache.stats() == {"count": 0, "keys": []}


def test_stats_lists_live_keys(cache, clock):
    cache.set("/api/categories", [], 600_000)
    cache.set("/api/products", {}, 300_000)
    clock.advance(301)
    assert cache.stats() == {"count": 1, "keys": ["/api/categories"]}


def test_non_positive_ttl_stores_nothing(cache):
    cache.set("k", "v", 0)
    assert cache.get("k") is MISS


def test_max_entries_drops_oldest(clock):
    cache = ResponseCache(max_entries=2, clock=clock)
    cache.set("a", 1, 60_000)
    cache.set("b", 2, 60_000)
    cache.set("c", 3, 60_000)
    assert cache.get("a") is MISS
    assert cache.stats()["keys"] == ["b", "c"]


def test_entry_expires_after_ttl_with_real_clock():
    cache = ResponseCache()
    cache.set("k", "v", 100)
    assert cache.get("k") == "v"
    time.sleep(0.15)
    assert cache.get("k") is MISS


def test_sweep_on_set_removes_stale_entries_without_a_read(clock):
    """Verify eager eviction: a later set past the sweep interval empties stale keys."""
    cache = ResponseCache(clock=clock, sweep_interval=10)
    cache.set("/api/search?q=steel", "v", 5_000)
    clock.advance(11)
    cache.set("/api/categories", [], 600_000)
    assert list(cache._store) == ["/api/categories"]


def test_set_before_sweep_interval_keeps_stale_entry_but_get_misses(clock):
    cache = ResponseCache(clock=clock, sweep_interval=60)
    cache.set("a", 1, 1_000)
    clock.advance(2)
    cache.set("b", 2, 1_000)
    assert "a" in cache._store
    assert cache.get("a") is MISS


def test_explicit_sweep(clock):
    cache = ResponseCache(clock=clock)
    cache.set("a", 1, 1_000)
    cache.set("b", 2, 60_000)
    clock.advance(5)
    cache.sweep()
    assert list(cache._store) == ["b"]


def test_many_distinct_keys_start_no_threads():
    """Verify that storing entries never spawns background threads."""
    cache = ResponseCache()
    before = threading.active_count()
    for i in range(300):
        cache.set(f"/api/search?q=steel{i}", {"products": []}, 300_000)
    assert threading.active_count() == before
    cache.clear()
    assert threading.active_count() == before


def test_overwritten_short_entry_takes_new_ttl(clock):
    cache = ResponseCache(clock=clock)
    cache.set("k", "v1", 50)
    cache.set("k", "v2", 5_000)
    clock.advance(1)
    assert cache.get("k") == "v2"
