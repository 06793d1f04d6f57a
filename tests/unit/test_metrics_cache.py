"""
Unit tests for the metrics cache and per-user locks.
"""

import threading

from portfolio_tracking import MetricsCache, UserLockRegistry


class TestMetricsCache:

    def test_get_or_compute_caches(self, clock):
        cache = MetricsCache(ttl_seconds=60, clock=clock)
        calls = []

        def compute():
            calls.append(1)
            return "metrics"

        key = MetricsCache.key("user-1", "performance", 30, "CRYPTO_INDEX")
        assert cache.get_or_compute(key, compute) == "metrics"
        assert cache.get_or_compute(key, compute) == "metrics"
        assert len(calls) == 1
        assert cache.get_statistics() == {'entries': 1, 'hits': 1, 'misses': 1, 'stale_puts': 0}

    def test_entries_expire(self, clock):
        cache = MetricsCache(ttl_seconds=60, clock=clock)
        key = MetricsCache.key("user-1", "risk", 30)
        cache.put(key, "old")

        clock.advance(seconds=59)
        assert cache.get(key) == "old"
        clock.advance(seconds=1)
        assert cache.get(key) is None
        assert cache.get_statistics()['entries'] == 0

    def test_invalidate_user_only_drops_that_user(self, clock):
        cache = MetricsCache(clock=clock)
        cache.put(MetricsCache.key("alice", "performance", 30), 1)
        cache.put(MetricsCache.key("alice", "risk", 30), 2)
        cache.put(MetricsCache.key("bob", "risk", 30), 3)

        assert cache.invalidate_user("alice") == 2
        assert cache.get(MetricsCache.key("alice", "risk", 30)) is None
        assert cache.get(MetricsCache.key("bob", "risk", 30)) == 3

    def test_value_computed_across_an_invalidation_is_not_stored(self, clock):
        cache = MetricsCache(clock=clock)
        key = MetricsCache.key("alice", "performance", 30)

        def compute():
            cache.invalidate_user("alice")
            return "stale"

        assert cache.get_or_compute(key, compute) == "stale"
        assert cache.get(key) is None
        assert cache.get_statistics()['stale_puts'] == 1
        assert cache.get_or_compute(key, lambda: "fresh") == "fresh"
        assert cache.get(key) == "fresh"

    def test_put_with_old_generation_is_dropped(self, clock):
        cache = MetricsCache(clock=clock)
        key = MetricsCache.key("alice", "risk", 30)
        generation = cache.generation("alice")

        cache.invalidate_user("bob")
        assert cache.put(key, "still current", generation) is True

        cache.invalidate_user("alice")
        assert cache.generation("alice") == generation + 1
        assert cache.put(key, "old", generation) is False
        assert cache.get(key) is None
        assert cache.put(key, "new", cache.generation("alice")) is True
        assert cache.get(key) == "new"

    def test_zero_ttl_disables_caching(self, clock):
        cache = MetricsCache(ttl_seconds=0, clock=clock)
        key = MetricsCache.key("user-1", "risk")
        cache.put(key, "value")
        assert cache.get(key) is None

    def test_clear(self, clock):
        cache = MetricsCache(clock=clock)
        cache.put(MetricsCache.key("user-1", "risk"), 1)
        cache.clear()
        assert cache.get_statistics()['entries'] == 0


class TestUserLockRegistry:

    def test_one_lock_per_user(self):
        locks = UserLockRegistry()
        assert locks.lock_for("alice") is locks.lock_for("alice")
        assert locks.lock_for("alice") is not locks.lock_for("bob")
        assert len(locks) == 2

    def test_hold_is_reentrant(self):
        locks = UserLockRegistry()
        with locks.hold("alice"):
            with locks.hold("alice"):
                pass

    def test_other_users_are_not_blocked(self):
        locks = UserLockRegistry()
        acquired = threading.Event()

        def other_user():
            with locks.hold("bob"):
                acquired.set()

        with locks.hold("alice"):
            thread = threading.Thread(target=other_user)
            thread.start()
            assert acquired.wait(timeout=5)
            thread.join()
