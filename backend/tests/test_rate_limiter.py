"""
QRGate: Rate Limiter Unit Tests
================================

What:  Tests for the fixed-window RateLimiter and its in-memory store.
How:   A FakeClock drives window expiry; no sleeping, no HTTP.

What we test:
    ✅ Requests up to the limit are admitted, the next one is rejected
    ✅ Rejected attempts still count (hammering stays rejected)
    ✅ The window resets once its duration has elapsed
    ✅ Scopes and clients are counted independently
    ✅ The store stays bounded and evicts expired entries first
    ✅ Concurrent increments are not lost
"""

import threading
from unittest.mock import patch

import pytest

from qrgate.exceptions import RateExceededError
from qrgate.services.rate_limiter import InMemoryRateLimitStore, RateLimiter
from conftest import FakeClock


class TestRateLimiterWindow:
    """Tests for fixed-window counting."""

    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(scope="global", limit=3, window_seconds=60, clock=self.clock)

    def test_admits_up_to_limit(self):
        """The first `limit` attempts are admitted with decreasing remaining."""
        remaining = [self.limiter.hit("1.2.3.4").remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

    def test_rejects_attempt_over_limit(self):
        """The (limit + 1)-th attempt is rejected."""
        for _ in range(3):
            assert self.limiter.hit("1.2.3.4").allowed

        decision = self.limiter.hit("1.2.3.4")
        assert not decision.allowed
        assert decision.remaining == 0

    def test_check_raises_with_retry_hint(self):
        """check() raises RateExceededError carrying the seconds left in the window."""
        for _ in range(3):
            self.limiter.check("1.2.3.4")

        self.clock.advance(20)
        with pytest.raises(RateExceededError) as exc_info:
            self.limiter.check("1.2.3.4")

        assert exc_info.value.retry_after == 40
        assert exc_info.value.limit == 3
        assert exc_info.value.scope == "global"
        assert exc_info.value.headers["Retry-After"] == "40"

    def test_hammering_stays_rejected(self):
        """Every attempt after the breach is rejected until the window ends."""
        for _ in range(3):
            self.limiter.hit("1.2.3.4")

        for _ in range(10):
            self.clock.advance(5)
            assert not self.limiter.hit("1.2.3.4").allowed

    def test_window_resets_after_duration(self):
        """Once the window has elapsed the client starts from zero."""
        for _ in range(4):
            self.limiter.hit("1.2.3.4")

        self.clock.advance(60)
        decision = self.limiter.hit("1.2.3.4")
        assert decision.allowed
        assert decision.remaining == 2

    def test_window_does_not_reset_early(self):
        """One second before the boundary the window is still closed."""
        for _ in range(3):
            self.limiter.hit("1.2.3.4")

        self.clock.advance(59)
        assert not self.limiter.hit("1.2.3.4").allowed

    def test_reset_after_is_at_least_one_second(self):
        self.limiter.hit("1.2.3.4")
        self.clock.advance(59.9)
        assert self.limiter.hit("1.2.3.4").reset_after == 1

    def test_clients_counted_independently(self):
        """One client's exhaustion does not affect another."""
        for _ in range(4):
            self.limiter.hit("1.2.3.4")
        assert self.limiter.hit("5.6.7.8").allowed

    def test_decision_headers(self):
        decision = self.limiter.hit("1.2.3.4")
        assert decision.headers == {
            "RateLimit-Limit": "3",
            "RateLimit-Remaining": "2",
            "RateLimit-Reset": "60",
        }


class TestSharedStore:
    """Tests for two scopes sharing one store."""

    def test_scopes_do_not_share_counters(self):
        """The same client has separate budgets per scope."""
        clock = FakeClock()
        store = InMemoryRateLimitStore()
        coarse = RateLimiter("global", limit=100, window_seconds=900, store=store, clock=clock)
        fine = RateLimiter("generate", limit=1, window_seconds=300, store=store, clock=clock)

        assert fine.hit("1.2.3.4").allowed
        assert not fine.hit("1.2.3.4").allowed
        assert coarse.hit("1.2.3.4").remaining == 99


class TestInMemoryRateLimitStore:
    """Tests for bounded storage."""

    def test_store_is_bounded(self):
        store = InMemoryRateLimitStore(max_keys=3)
        for i in range(10):
            store.increment(("global", f"10.0.0.{i}"), window=60, now=1000.0 + i)
        assert len(store) == 3

    def test_expired_entries_evicted_before_active_ones(self):
        """A recently active client survives eviction; expired windows go first."""
        store = InMemoryRateLimitStore(max_keys=2)
        store.increment(("global", "active"), window=1000, now=0.0)
        store.increment(("global", "expired"), window=10, now=1.0)

        # "active" is now the least recently used but still inside its window
        store.increment(("global", "new"), window=1000, now=50.0)

        state = store.increment(("global", "active"), window=1000, now=51.0)
        assert state.count == 2

    def test_least_recently_used_evicted_when_all_active(self):
        store = InMemoryRateLimitStore(max_keys=2)
        store.increment(("global", "a"), window=1000, now=0.0)
        store.increment(("global", "b"), window=1000, now=1.0)
        store.increment(("global", "a"), window=1000, now=2.0)
        store.increment(("global", "c"), window=1000, now=3.0)

        # "b" was evicted, so it starts a fresh window
        assert store.increment(("global", "b"), window=1000, now=4.0).count == 1

    def test_full_store_does_not_rescan_on_every_new_client(self):
        """Between sweeps a flood of new keys only evicts the LRU entry."""
        store = InMemoryRateLimitStore(max_keys=2, sweep_interval=60)

        with patch.object(store, "_sweep_expired", wraps=store._sweep_expired) as sweep:
            for i in range(50):
                store.increment(("global", f"10.0.0.{i}"), window=1000, now=100.0 + i * 0.1)

        assert sweep.call_count == 1
        assert len(store) == 2

    def test_expired_windows_swept_again_after_interval(self):
        store = InMemoryRateLimitStore(max_keys=2, sweep_interval=10)
        store.increment(("global", "a"), window=1000, now=0.0)
        store.increment(("global", "b"), window=1000, now=1.0)
        store.increment(("global", "c"), window=1000, now=2.0)  # sweeps, evicts "a"
        store.increment(("global", "short"), window=1, now=3.0)  # no sweep, evicts "b"

        # "c" is LRU but active; the next sweep removes the expired "short" instead
        store.increment(("global", "d"), window=1000, now=20.0)
        assert store.increment(("global", "c"), window=1000, now=21.0).count == 2

    def test_concurrent_increments_are_not_lost(self):
        """Threads hammering one key end with an exact count."""
        store = InMemoryRateLimitStore()
        key = ("global", "1.2.3.4")

        def worker():
            for _ in range(500):
                store.increment(key, window=1000, now=0.0)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.increment(key, window=1000, now=0.0).count == 8 * 500 + 1
