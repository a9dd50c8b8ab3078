"""
Account Lockout
===============

Per-user lockout state machine layered on ``CredentialStore``.

States:
    ACTIVE        failed_attempts below threshold, no lock
    LOCKED        locked_until in the future
    EXPIRED_LOCK  locked_until in the past (healed on next observation)

Security Features:
- Lock after N consecutive failures (default 3) for a fixed window (default 12h)
- Atomic increment-and-fetch, so concurrent failures cannot undercount
- Expired locks are cleared lazily by whichever read observes them first
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from folioauth.core.auth.credential_store import CredentialStore, User
from folioauth.security.constants import LOCKOUT_DURATION_SECONDS, MAX_FAILED_ATTEMPTS


class LockState(Enum):
    ACTIVE = "active"
    LOCKED = "locked"
    EXPIRED_LOCK = "expired_lock"


@dataclass(frozen=True, slots=True)
class LockStatus:
    """Observed lock state of one account."""

    locked: bool
    locked_until: Optional[datetime] = None
    failed_attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"locked": self.locked}
        if self.locked:
            body["locked_until"] = self.locked_until.isoformat()
            body["failed_attempts"] = self.failed_attempts
        elif self.failed_attempts > 0:
            body["failed_attempts"] = self.failed_attempts
        return body


class LockoutStateMachine:
    """
    Drives the ACTIVE -> LOCKED -> EXPIRED_LOCK -> ACTIVE cycle.

    Usage:
        lockout = LockoutStateMachine(store)

        status = lockout.is_account_locked("alice")
        if not status.locked and not password_ok:
            user = lockout.record_failed_attempt("alice")
    """

    __slots__ = ("_store", "_max_failed_attempts", "_lockout_duration", "_log")

    def __init__(
        self,
        store: CredentialStore,
        max_failed_attempts: int = MAX_FAILED_ATTEMPTS,
        lockout_duration: timedelta = timedelta(seconds=LOCKOUT_DURATION_SECONDS),
    ) -> None:
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        self._store = store
        self._max_failed_attempts = max_failed_attempts
        self._lockout_duration = lockout_duration
        self._log = logging.getLogger("folioauth.lockout")

    @property
    def max_failed_attempts(self) -> int:
        return self._max_failed_attempts

    @property
    def lockout_duration(self) -> timedelta:
        return self._lockout_duration

    @staticmethod
    def state_of(user: User, now: Optional[datetime] = None) -> LockState:
        now = now or datetime.now(timezone.utc)
        if user.locked_until is None:
            return LockState.ACTIVE
        if user.locked_until > now:
            return LockState.LOCKED
        return LockState.EXPIRED_LOCK

    def remaining_attempts(self, user: User) -> int:
        return max(self._max_failed_attempts - user.failed_attempts, 0)

    def record_failed_attempt(self, username: str) -> Optional[User]:
        """
        Count one failed login.

        Always stamps ``last_failed_attempt``. Reaching the threshold sets
        ``locked_until = now + lockout_duration``.

        Returns:
            The updated user, or None if the username is unknown
        """
        now = datetime.now(timezone.utc)
        user = self._store.increment_failed_attempts(
            username,
            lock_threshold=self._max_failed_attempts,
            lock_duration=self._lockout_duration,
            now=now,
        )
        if user is None:
            return None

        if self.state_of(user, now) is LockState.LOCKED:
            self._log.warning(
                "Account '%s' locked until %s after %d failed attempts",
                username, user.locked_until.isoformat(), user.failed_attempts,
            )
        else:
            self._log.info(
                "Failed login for '%s' (%d/%d)",
                username, user.failed_attempts, self._max_failed_attempts,
            )
        return user

    def reset_failed_attempts(self, username: str) -> Optional[User]:
        """Return the account to ACTIVE with a zero counter."""
        return self._store.reset_failed_attempts(username)

    def is_account_locked(self, username: str) -> LockStatus:
        """
        Report whether ``username`` is currently locked.

        An expired lock is cleared as a side effect of this read and
        reported as unlocked. Unknown usernames report unlocked.
        """
        user = self._store.get_by_username(username)
        if user is None:
            return LockStatus(locked=False)
        return self.observe(user)

    def observe(self, user: User) -> LockStatus:
        """Lock status for an already-loaded user, healing an expired lock."""
        now = datetime.now(timezone.utc)
        state = self.state_of(user, now)

        if state is LockState.LOCKED:
            return LockStatus(
                locked=True,
                locked_until=user.locked_until,
                failed_attempts=user.failed_attempts,
            )

        if state is LockState.EXPIRED_LOCK:
            if self._store.clear_expired_lock(user.username, now):
                self._log.info("Lockout expired for '%s'", user.username)
            return LockStatus(locked=False)

        return LockStatus(locked=False, failed_attempts=user.failed_attempts)

    def unlock(self, username: str) -> Optional[User]:
        """Operator override: clear the lock immediately."""
        return self._store.unlock_account(username)
