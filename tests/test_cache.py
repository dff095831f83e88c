from datetime import timedelta

from yourstop.services.cache import TTLCache


def test_get_returns_stored_value(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", {"x": 1}, ttl=timedelta(seconds=10))

    assert cache.get("a") == {"x": 1}
    assert cache.has("a")


def test_entry_expires_exactly_at_ttl(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1, ttl=timedelta(seconds=10))

    clock.advance(9.999)
    assert cache.get("a") == 1

    clock.advance(0.001)
    assert cache.get("a") is None
    assert len(cache) == 0
    assert cache.get_stats().expirations == 1


def test_set_overwrites_and_restarts_ttl(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1, ttl=timedelta(seconds=10))
    clock.advance(8)
    cache.set("a", 2, ttl=timedelta(seconds=10))
    clock.advance(8)

    assert cache.get("a") == 2


def test_expired_entries_stay_until_read_or_swept(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1, ttl=timedelta(seconds=1))
    cache.set("b", 2, ttl=timedelta(seconds=100))
    clock.advance(5)

    assert len(cache) == 2
    assert cache.cleanup_expired() == 1
    assert len(cache) == 1
    assert cache.get("b") == 2


def test_lru_eviction_at_capacity(clock):
    cache = TTLCache(max_size=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert cache.get_stats().evictions == 1


def test_invalidate_by_substring(clock):
    cache = TTLCache(prefix="availability_", clock=clock)
    cache.set("availability_r1_2026-03-10", 1)
    cache.set("availability_r1_2026-03-11", 2)
    cache.set("availability_r2_2026-03-10", 3)

    assert cache.invalidate("_r1_") == 2
    assert len(cache) == 1


def test_generate_key_is_stable_and_prefixed():
    cache = TTLCache(prefix="reviews_")

    first = cache.generate_key("reviews", "r1", params={"b": 2, "a": 1, "c": None})
    second = cache.generate_key("reviews", "r1", params={"a": 1, "b": 2})

    assert first == second == "reviews_reviews_r1?a=1&b=2"


def test_generate_key_hashes_long_keys():
    cache = TTLCache(prefix="p_")
    key = cache.generate_key("x" * 300)

    assert key.startswith("p_")
    assert len(key) == len("p_") + 16


def test_stats_track_hits_and_misses(clock):
    cache = TTLCache(clock=clock)
    cache.set("a", 1)
    cache.get("a")
    cache.get("missing")

    stats = cache.get_stats()
    assert stats.hits == 1
    assert stats.misses == 1
    assert stats.to_dict()["size"] == 1


def test_zero_ttl_is_not_replaced_by_default(clock):
    cache = TTLCache(clock=clock, default_ttl=timedelta(minutes=5))
    cache.set("a", 1, ttl=timedelta(0))
    cache.set("b", 2)

    assert cache.get("a") is None
    assert cache.get("b") == 2
