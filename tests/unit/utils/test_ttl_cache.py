from unittest.mock import MagicMock

import pytest

from growcare.utils.cache import TTLCache


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


@pytest.fixture()
def ticks():
    return FakeMonotonic()


def test_loader_runs_once_until_expiry(ticks):
    cache = TTLCache(ttl_seconds=60, maxsize=8, clock=ticks)
    loader = MagicMock(return_value={"strain_type": "indica"})

    assert cache.get("northern-lights", loader) == {"strain_type": "indica"}
    assert cache.get("northern-lights", loader) == {"strain_type": "indica"}
    assert loader.call_count == 1

    ticks.value += 60
    cache.get("northern-lights", loader)
    assert loader.call_count == 2


def test_none_is_not_cached(ticks):
    cache = TTLCache(ttl_seconds=60, clock=ticks)
    loader = MagicMock(return_value=None)
    cache.get("missing", loader)
    cache.get("missing", loader)
    assert loader.call_count == 2
    assert "missing" not in cache


def test_lru_eviction(ticks):
    cache = TTLCache(ttl_seconds=60, maxsize=2, clock=ticks)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert "a" in cache
    assert "b" not in cache
    assert cache.get_stats()["evictions"] == 1


def test_invalidate_and_clear(ticks):
    cache = TTLCache(ttl_seconds=60, clock=ticks)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert "a" not in cache
    assert "b" in cache
    cache.clear()
    assert cache.get_stats()["size"] == 0


def test_disabled_cache_always_loads(ticks):
    cache = TTLCache(enabled=False, clock=ticks)
    loader = MagicMock(return_value=5)
    assert cache.get("a", loader) == 5
    assert cache.get("a", loader) == 5
    assert loader.call_count == 2
    assert cache.get_stats()["enabled"] is False


def test_zero_ttl_disables_cache():
    assert TTLCache(ttl_seconds=0).enabled is False


def test_stats(ticks):
    cache = TTLCache(ttl_seconds=30, maxsize=4, clock=ticks)
    cache.get("a", lambda: 1)
    cache.get("a", lambda: 1)
    cache.get("a", lambda: 1)
    stats = cache.get_stats()
    assert stats == {
        "enabled": True,
        "size": 1,
        "maxsize": 4,
        "ttl_seconds": 30,
        "hits": 2,
        "misses": 1,
        "hit_rate": 66.67,
        "evictions": 0,
    }
