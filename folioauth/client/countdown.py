"""
Lockout Countdown
=================

One-second countdown to the end of an account lockout, rendered as
``Hh Mm Ss``. The timer reschedules itself after each tick and stops on
expiry or on ``cancel()``; no timer outlives its countdown.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional


def format_time_remaining(remaining: timedelta) -> str:
    """Format a duration as ``"11h 59m 58s"``. Negative durations read as zero."""
    total = max(int(remaining.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}h {minutes}m {seconds}s"


class LockoutCountdown:
    """
    Usage:
        countdown = LockoutCountdown(locked_until, on_tick=print, on_expire=unlock_ui)
        countdown.start()
        ...
        countdown.cancel()
    """

    __slots__ = (
        "_locked_until", "_on_tick", "_on_expire", "_interval",
        "_timer", "_running", "_lock", "_time_remaining",
    )

    def __init__(
        self,
        locked_until: datetime,
        on_tick: Optional[Callable[[str], None]] = None,
        on_expire: Optional[Callable[[], None]] = None,
        interval: float = 1.0,
    ) -> None:
        self._locked_until = locked_until
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._interval = interval
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._lock = threading.Lock()
        self._time_remaining = format_time_remaining(self.remaining())

    @property
    def locked_until(self) -> datetime:
        return self._locked_until

    @property
    def running(self) -> bool:
        return self._running

    @property
    def time_remaining(self) -> str:
        return self._time_remaining

    def remaining(self) -> timedelta:
        return self._locked_until - datetime.now(timezone.utc)

    def start(self) -> None:
        """Render immediately, then once per interval until expiry."""
        with self._lock:
            if self._running:
                return
            self._running = True
        self.tick()

    def cancel(self) -> None:
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def tick(self) -> None:
        """Update the rendered time; expire or schedule the next tick."""
        if not self._running:
            return

        remaining = self.remaining()
        if remaining.total_seconds() <= 0:
            self.cancel()
            self._time_remaining = format_time_remaining(timedelta(0))
            if self._on_expire is not None:
                self._on_expire()
            return

        self._time_remaining = format_time_remaining(remaining)
        if self._on_tick is not None:
            self._on_tick(self._time_remaining)

        with self._lock:
            if not self._running:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._interval, self.tick)
            self._timer.daemon = True
            self._timer.start()
