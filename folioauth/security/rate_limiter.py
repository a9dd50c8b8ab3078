"""
Rate Limiter
============

Fixed-window request limiter keyed by client origin.

A window opens on the first request from an origin and lasts
``window_seconds``. Every request in the window is counted, successful
or not; once the count exceeds ``max_attempts`` further requests are
rejected until the window's reset time has passed. Expired windows are
evicted at most once per window length, so the table only holds origins
seen recently.

Window state lives behind the ``CounterStore`` interface so the
in-process default can be swapped for a shared backend when the
service runs as more than one process.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Protocol

from folioauth.security.constants import RATE_LIMIT_MAX_ATTEMPTS, RATE_LIMIT_WINDOW_SECONDS


@dataclass(frozen=True, slots=True)
class RateLimitWindow:
    """Request count for one origin and the moment its window ends."""

    count: int
    reset_time: datetime


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    count: int
    reset_time: datetime
    limit: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


class CounterStore(Protocol):
    """Storage for per-origin windows."""

    def get(self, key: str) -> Optional[RateLimitWindow]:
        ...

    def increment(self, key: str) -> RateLimitWindow:
        """Add one to an existing window and return it."""
        ...

    def reset_window(self, key: str, reset_time: datetime) -> RateLimitWindow:
        """Replace the window with ``count=1`` ending at ``reset_time``."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Drop windows whose reset time is before ``now``. Returns how many."""
        ...


class InMemoryCounterStore:
    """Process-local CounterStore. Counters are lost on restart."""

    __slots__ = ("_windows", "_lock")

    def __init__(self) -> None:
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[RateLimitWindow]:
        with self._lock:
            return self._windows.get(key)

    def increment(self, key: str) -> RateLimitWindow:
        with self._lock:
            current = self._windows[key]
            updated = RateLimitWindow(count=current.count + 1, reset_time=current.reset_time)
            self._windows[key] = updated
            return updated

    def reset_window(self, key: str, reset_time: datetime) -> RateLimitWindow:
        with self._lock:
            window = RateLimitWindow(count=1, reset_time=reset_time)
            self._windows[key] = window
            return window

    def purge_expired(self, now: datetime) -> int:
        """Drop windows whose reset time has passed. Returns how many."""
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w.reset_time]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def clear(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


class RateLimiter:
    """
    Per-origin fixed-window limiter.

    Usage:
        limiter = RateLimiter()

        decision = limiter.check(request.remote_addr)
        if not decision.allowed:
            raise RateLimitError(decision.reset_time)
    """

    __slots__ = ("_store", "_max_attempts", "_window", "_next_sweep", "_lock", "_log")

    def __init__(
        self,
        store: Optional[CounterStore] = None,
        max_attempts: int = RATE_LIMIT_MAX_ATTEMPTS,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._store: CounterStore = store if store is not None else InMemoryCounterStore()
        self._max_attempts = max_attempts
        self._window = timedelta(seconds=window_seconds)
        self._next_sweep: Optional[datetime] = None
        # Serializes get-then-update so one origin cannot open two windows
        self._lock = threading.Lock()
        self._log = logging.getLogger("folioauth.ratelimit")

    @property
    def store(self) -> CounterStore:
        return self._store

    def check(self, origin: str) -> RateLimitDecision:
        """
        Count one request from ``origin`` and decide whether it may proceed.

        A fresh window starts when none exists or ``now`` is strictly
        after the stored reset time.
        """
        now = datetime.now(timezone.utc)

        with self._lock:
            if self._next_sweep is None or now >= self._next_sweep:
                self._sweep(now)

            window = self._store.get(origin)
            if window is None or now > window.reset_time:
                window = self._store.reset_window(origin, now + self._window)
            else:
                window = self._store.increment(origin)

        allowed = window.count <= self._max_attempts
        if not allowed and window.count == self._max_attempts + 1:
            self._log.warning(
                "Rate limit reached for origin %s; window resets at %s",
                origin, window.reset_time.isoformat(),
            )

        return RateLimitDecision(
            allowed=allowed,
            count=window.count,
            reset_time=window.reset_time,
            limit=self._max_attempts,
        )

    def _sweep(self, now: datetime) -> None:
        """Evict expired windows; runs at most once per window length."""
        purged = self._store.purge_expired(now)
        self._next_sweep = now + self._window
        if purged:
            self._log.debug("Evicted %d expired rate-limit windows", purged)
