"""Tests for the per-origin fixed-window rate limiter."""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from folioauth.security.rate_limiter import InMemoryCounterStore, RateLimiter, RateLimitWindow


START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestRateLimiter:

    def test_first_request_opens_window(self):
        limiter = RateLimiter()

        with freeze_time(START):
            decision = limiter.check("10.0.0.1")

        assert decision.allowed is True
        assert decision.count == 1
        assert decision.reset_time == START + timedelta(minutes=15)
        assert decision.remaining == 9

    def test_eleventh_request_is_rejected(self):
        limiter = RateLimiter()

        with freeze_time(START) as frozen:
            decisions = []
            for _ in range(11):
                decisions.append(limiter.check("10.0.0.1"))
                frozen.tick(timedelta(seconds=10))

        assert all(d.allowed for d in decisions[:10])
        assert decisions[10].allowed is False
        assert decisions[10].count == 11
        assert decisions[10].reset_time == START + timedelta(minutes=15)

    def test_origins_are_independent(self):
        limiter = RateLimiter(max_attempts=1)

        with freeze_time(START):
            assert limiter.check("10.0.0.1").allowed is True
            assert limiter.check("10.0.0.1").allowed is False
            assert limiter.check("10.0.0.2").allowed is True

    def test_new_window_after_reset_time(self):
        limiter = RateLimiter(max_attempts=2)

        with freeze_time(START):
            for _ in range(3):
                limiter.check("10.0.0.1")

        # Exactly at reset_time the old window still applies
        with freeze_time(START + timedelta(minutes=15)):
            assert limiter.check("10.0.0.1").allowed is False

        with freeze_time(START + timedelta(minutes=15, seconds=1)):
            decision = limiter.check("10.0.0.1")

        assert decision.allowed is True
        assert decision.count == 1
        assert decision.reset_time == START + timedelta(minutes=30, seconds=1)

    def test_custom_store_is_used(self):
        store = InMemoryCounterStore()
        limiter = RateLimiter(store, max_attempts=5, window_seconds=60)

        with freeze_time(START):
            limiter.check("10.0.0.1")
            limiter.check("10.0.0.1")

        assert limiter.store is store
        assert store.get("10.0.0.1") == RateLimitWindow(count=2, reset_time=START + timedelta(seconds=60))

    def test_rejects_bad_limits(self):
        with pytest.raises(ValueError):
            RateLimiter(max_attempts=0)
        with pytest.raises(ValueError):
            RateLimiter(window_seconds=0)

    def test_expired_windows_are_evicted(self):
        limiter = RateLimiter()

        with freeze_time(START) as frozen:
            for i in range(500):
                limiter.check(f"10.0.{i // 256}.{i % 256}")
            assert len(limiter.store) == 500

            frozen.tick(timedelta(days=2))
            limiter.check("192.0.2.1")

        assert len(limiter.store) == 1
        assert limiter.store.get("10.0.0.0") is None

    def test_live_windows_survive_a_sweep(self):
        limiter = RateLimiter(window_seconds=60)

        with freeze_time(START) as frozen:
            limiter.check("10.0.0.1")
            frozen.tick(timedelta(seconds=45))
            limiter.check("10.0.0.2")
            frozen.tick(timedelta(seconds=30))
            limiter.check("10.0.0.3")

        assert limiter.store.get("10.0.0.1") is None
        assert limiter.store.get("10.0.0.2").count == 1
        assert len(limiter.store) == 2


class TestInMemoryCounterStore:

    def test_purge_expired(self):
        store = InMemoryCounterStore()
        store.reset_window("old", START)
        store.reset_window("new", START + timedelta(hours=1))

        assert store.purge_expired(START + timedelta(minutes=1)) == 1
        assert store.get("old") is None
        assert len(store) == 1

    def test_clear(self):
        store = InMemoryCounterStore()
        store.reset_window("a", START)
        store.reset_window("b", START)

        store.clear("a")
        assert store.get("a") is None
        store.clear()
        assert len(store) == 0
