from unittest.mock import patch

from services.response_cache import ResponseCache


class TestResponseCache:

    def test_put_then_get_returns_exact_text(self):
        cache = ResponseCache(3)
        cache.put("m::hi", "Hello  there\n")
        assert cache.get("m::hi") == "Hello  there\n"

    def test_missing_key_returns_none(self):
        assert ResponseCache(3).get("nope") is None

    def test_empty_key_or_text_is_ignored(self):
        cache = ResponseCache(3)
        cache.put("", "text")
        cache.put("key", "")
        cache.put("key", None)
        assert len(cache) == 0

    def test_capacity_plus_one_evicts_first_inserted(self):
        cache = ResponseCache(3)
        for k in ("a", "b", "c", "d"):
            cache.put(k, k.upper())
        assert "a" not in cache
        assert [cache.get(k) for k in ("b", "c", "d")] == ["B", "C", "D"]
        assert len(cache) == 3

    def test_reput_does_not_grow_and_refreshes_position(self):
        cache = ResponseCache(2)
        cache.put("a", "1")
        cache.put("b", "2")
        cache.put("a", "3")
        assert len(cache) == 2
        cache.put("c", "4")
        assert "b" not in cache
        assert cache.get("a") == "3"

    def test_get_does_not_refresh_position(self):
        cache = ResponseCache(2)
        cache.put("a", "1")
        cache.put("b", "2")
        assert cache.get("a") == "1"
        cache.put("c", "3")
        assert "a" not in cache
        assert "b" in cache

    def test_clear(self):
        cache = ResponseCache(2)
        cache.put("a", "1")
        cache.clear()
        assert len(cache) == 0


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestResponseCacheExpiry:

    def test_default_ttl(self):
        assert ResponseCache().ttl_seconds == 900

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        with patch("services.response_cache.time.monotonic", clock):
            cache = ResponseCache(3, ttl_seconds=10)
            cache.put("k", "answer")
            clock.now = 1009.5
            assert cache.get("k") == "answer"
            clock.now = 1010.0
            assert cache.get("k") is None
            assert len(cache) == 0

    def test_put_drops_expired_entries(self):
        clock = FakeClock()
        with patch("services.response_cache.time.monotonic", clock):
            cache = ResponseCache(3, ttl_seconds=10)
            cache.put("old", "1")
            clock.now = 1005.0
            cache.put("mid", "2")
            clock.now = 1011.0
            cache.put("new", "3")
            assert "old" not in cache
            assert [cache.get(k) for k in ("mid", "new")] == ["2", "3"]

    def test_reput_restarts_expiry(self):
        clock = FakeClock()
        with patch("services.response_cache.time.monotonic", clock):
            cache = ResponseCache(3, ttl_seconds=10)
            cache.put("k", "v1")
            clock.now = 1008.0
            cache.put("k", "v2")
            clock.now = 1015.0
            assert cache.get("k") == "v2"

    def test_get_does_not_extend_expiry(self):
        clock = FakeClock()
        with patch("services.response_cache.time.monotonic", clock):
            cache = ResponseCache(3, ttl_seconds=10)
            cache.put("k", "v")
            clock.now = 1009.0
            assert cache.get("k") == "v"
            clock.now = 1010.0
            assert cache.get("k") is None
