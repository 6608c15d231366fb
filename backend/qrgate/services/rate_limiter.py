"""
QRGate: Fixed-Window Rate Limiter
==================================

What:  Per-client request budgets over fixed time windows, keyed by scope.
Why:   Protects the generation endpoint from abuse without user accounts.
How:   A RateLimiter owns one scope (e.g. "global", "generate") and asks a
       RateLimitStore to atomically increment the (scope, client) counter.
Who:   Used by RateLimitMiddleware (global scope) and by the generation
       pipeline's RateLimitGuard (generate scope).

Algorithm: Fixed Window Counter
    1. Each (scope, client) pair has a count and a window start
    2. When now >= window_start + window, the count resets to zero
    3. Every attempt increments the count, admitted or not
    4. count > limit → reject with the seconds left in the window

    Trade-off: a client can burst up to 2x the limit across a window
    boundary. Sliding windows avoid that but need per-request timestamps.

    Rejected attempts still count, so a client that keeps hammering stays
    rejected until it backs off for a full window.

Memory:
    The store is bounded by `max_keys`. When full, expired windows are
    dropped first, then the least recently touched keys. The scan for
    expired windows runs at most once per `sweep_interval`, so a flood of
    new clients costs O(1) per request between scans.

Production Upgrade Path:
    The in-memory store is per process. For multi-instance deployments,
    implement RateLimitStore on top of a shared counter (e.g. Redis INCR
    with EXPIRE); RateLimiter does not change.
"""

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from qrgate.exceptions import RateExceededError

logger = logging.getLogger(__name__)

WindowKey = Tuple[str, str]  # (scope, client key)


@dataclass
class RateWindow:
    """Counter state for one (scope, client) pair."""
    count: int
    window_start: float
    window: float

    @property
    def expires_at(self) -> float:
        return self.window_start + self.window


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Outcome of one rate-limit check.

    Attributes:
        allowed:     True if the attempt is within budget
        limit:       Budget for the window
        remaining:   Attempts left in the current window (never negative)
        reset_after: Whole seconds until the window resets (at least 1)
    """
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

    @property
    def retry_after(self) -> int:
        return self.reset_after

    @property
    def headers(self) -> dict:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


# ══════════════════════════════════════════════════════════════════════════
# Stores
# ══════════════════════════════════════════════════════════════════════════


class RateLimitStore(ABC):
    """
    Storage contract for rate-limit counters.

    Contract:
        - increment() is atomic per key: concurrent callers never lose an
          increment and never reset the same window twice
        - Returns a snapshot; callers must not mutate store internals
    """

    @abstractmethod
    def increment(self, key: WindowKey, window: float, now: float) -> RateWindow:
        """Count one attempt for `key` and return the resulting window state."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """
    Bounded in-process counter store.

    Thread Safety:
        A single lock guards the map. The critical section does no I/O, so
        contention is negligible for both the event loop and the threadpool.
    """

    def __init__(self, max_keys: int = 10_000, sweep_interval: float = 1.0):
        """
        Args:
            max_keys: Upper bound on tracked (scope, client) windows
            sweep_interval: Minimum seconds between full scans for expired
                windows; between scans a full store only drops its LRU entry
        """
        self.max_keys = max_keys
        self.sweep_interval = sweep_interval
        self._next_sweep = float("-inf")
        # Ordered by last touch: the first entry is the least recently used
        self._windows: "OrderedDict[WindowKey, RateWindow]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def increment(self, key: WindowKey, window: float, now: float) -> RateWindow:
        with self._lock:
            entry = self._windows.get(key)
            if entry is None or now >= entry.expires_at:
                entry = RateWindow(count=0, window_start=now, window=window)
                self._windows[key] = entry
            self._windows.move_to_end(key)
            entry.count += 1
            snapshot = RateWindow(entry.count, entry.window_start, entry.window)

            if len(self._windows) > self.max_keys:
                self._evict(now)

            return snapshot

    def _sweep_expired(self, now: float) -> int:
        """Drop every expired window. O(n), so rate-limited by sweep_interval."""
        expired = [k for k, w in self._windows.items() if now >= w.expires_at]
        for k in expired:
            del self._windows[k]
        self._next_sweep = now + self.sweep_interval
        return len(expired)

    def _evict(self, now: float) -> None:
        """Drop expired windows, then least recently used ones, down to max_keys."""
        expired = self._sweep_expired(now) if now >= self._next_sweep else 0

        evicted = 0
        while len(self._windows) > self.max_keys:
            self._windows.popitem(last=False)
            evicted += 1

        if expired or evicted:
            logger.debug(
                "Rate limit store pruned %d expired and %d idle entries",
                expired,
                evicted,
            )


# ══════════════════════════════════════════════════════════════════════════
# Limiter
# ══════════════════════════════════════════════════════════════════════════


class RateLimiter:
    """
    Fixed-window limiter for a single scope.

    Several limiters may share one store; the scope name keeps their
    counters apart.
    """

    def __init__(
        self,
        scope: str,
        limit: int,
        window_seconds: float,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            scope: Counter namespace ("global", "generate")
            limit: Attempts admitted per window
            window_seconds: Window length
            store: Counter storage (defaults to a private in-memory store)
            clock: Monotonic time source (overridden in tests)
        """
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store or InMemoryRateLimitStore()
        self.clock = clock

    def hit(self, client_key: str) -> RateLimitDecision:
        """Count one attempt for `client_key` and decide whether it is admitted."""
        now = self.clock()
        state = self.store.increment((self.scope, client_key), self.window_seconds, now)
        reset_after = max(1, math.ceil(state.expires_at - now))
        return RateLimitDecision(
            allowed=state.count <= self.limit,
            limit=self.limit,
            remaining=max(self.limit - state.count, 0),
            reset_after=reset_after,
        )

    def check(self, client_key: str) -> RateLimitDecision:
        """
        Like hit(), but raises on rejection.

        Raises:
            RateExceededError: budget for this scope is exhausted
        """
        decision = self.hit(client_key)
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded for %s in scope '%s': limit %d per %ds",
                client_key,
                self.scope,
                self.limit,
                self.window_seconds,
            )
            raise RateExceededError(
                scope=self.scope,
                limit=self.limit,
                retry_after=decision.retry_after,
                context={"client": client_key},
            )
        return decision
