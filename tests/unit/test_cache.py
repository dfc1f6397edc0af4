#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the cache service."""

import threading

from mdcompose.cache import Cache


class TestCacheBasics:
    """Tests for get/set/invalidate."""

    def test_get_default(self):
        cache = Cache()
        assert cache.get("missing") is None
        assert cache.get("missing", 42) == 42
        assert "missing" not in cache

    def test_set_and_get(self):
        cache = Cache()
        assert cache.set("key", "value") == "value"
        assert cache.get("key") == "value"
        assert "key" in cache
        assert len(cache) == 1

    def test_invalidate_single_key(self):
        cache = Cache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert "a" not in cache
        assert cache.get("b") == 2

    def test_invalidate_all(self):
        cache = Cache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate_all()
        assert len(cache) == 0

    def test_invalidate_tags(self):
        cache = Cache()
        cache.set("a", 1, tags={"docs"})
        cache.set("b", 2, tags={"docs", "other"})
        cache.set("c", 3)
        assert cache.invalidate_tags(["docs"]) == 2
        assert cache.get("c") == 3
        assert "a" not in cache and "b" not in cache

    def test_invalidation_hooks(self):
        cache = Cache()
        seen = []
        cache.add_invalidation_hook(seen.append)
        cache.set("a", 1)
        cache.invalidate("a")
        cache.invalidate_all()
        assert seen == ["a", None]


class TestCacheExpiry:
    """Tests for clock-driven expiry."""

    def test_default_max_age(self, clock):
        cache = Cache(clock=clock, max_age=10)
        cache.set("key", "value")
        clock.advance(9.9)
        assert cache.get("key") == "value"
        clock.advance(0.1)
        assert cache.get("key") is None

    def test_per_entry_max_age(self, clock):
        cache = Cache(clock=clock, max_age=10)
        cache.set("forever", 1, max_age=None)
        cache.set("short", 2, max_age=1)
        clock.advance(100)
        assert cache.get("forever") == 1
        assert cache.get("short") is None

    def test_expired_entry_is_rebuilt(self, clock):
        cache = Cache(clock=clock, max_age=5)
        assert cache.get_or_build("key", lambda: "first") == "first"
        clock.advance(5)
        assert cache.get_or_build("key", lambda: "second") == "second"

    def test_clock_is_exposed(self, clock):
        assert Cache(clock=clock).clock() == clock.now


class TestGetOrBuild:
    """Tests for single-winner population."""

    def test_builds_once(self):
        cache = Cache()
        calls = []

        def builder():
            calls.append(1)
            return object()

        first = cache.get_or_build("key", builder)
        second = cache.get_or_build("key", builder)
        assert first is second
        assert len(calls) == 1

    def test_redundant_build_is_discarded(self):
        cache = Cache()

        def builder():
            # Another caller wins the race while this build is running
            cache.set("key", "winner")
            return "loser"

        assert cache.get_or_build("key", builder) == "winner"
        assert cache.get("key") == "winner"

    def test_builder_exception_caches_nothing(self):
        cache = Cache()

        def builder():
            raise ValueError("no")

        try:
            cache.get_or_build("key", builder)
        except ValueError:
            pass
        assert "key" not in cache

    def test_concurrent_callers_agree(self):
        cache = Cache()
        barrier = threading.Barrier(8)
        results = []

        def builder():
            return object()

        def worker():
            barrier.wait()
            results.append(cache.get_or_build("shared", builder))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(result is results[0] for result in results)
