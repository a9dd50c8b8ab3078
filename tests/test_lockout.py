"""Tests for the account lockout state machine."""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from folioauth.core.auth.lockout import LockoutStateMachine, LockState, LockStatus


START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestRecordFailedAttempt:

    def test_first_failures_do_not_lock(self, lockout, admin):
        with freeze_time(START):
            user = lockout.record_failed_attempt("admin")
            user = lockout.record_failed_attempt("admin")

        assert user.failed_attempts == 2
        assert user.locked_until is None
        assert user.last_failed_attempt == START
        assert lockout.remaining_attempts(user) == 1

    def test_third_failure_locks_for_twelve_hours(self, lockout, admin):
        with freeze_time(START):
            for _ in range(3):
                user = lockout.record_failed_attempt("admin")

        assert user.failed_attempts == 3
        assert user.locked_until == START + timedelta(hours=12)
        assert LockoutStateMachine.state_of(user, START) is LockState.LOCKED

    def test_unknown_username(self, lockout):
        assert lockout.record_failed_attempt("ghost") is None

    def test_custom_threshold_and_duration(self, store, admin):
        lockout = LockoutStateMachine(store, max_failed_attempts=5, lockout_duration=timedelta(minutes=30))

        with freeze_time(START):
            for _ in range(4):
                user = lockout.record_failed_attempt("admin")
            assert user.locked_until is None
            user = lockout.record_failed_attempt("admin")

        assert user.locked_until == START + timedelta(minutes=30)

    def test_rejects_zero_threshold(self, store):
        with pytest.raises(ValueError):
            LockoutStateMachine(store, max_failed_attempts=0)


class TestIsAccountLocked:

    def test_active_account(self, lockout, admin):
        assert lockout.is_account_locked("admin") == LockStatus(locked=False)

    def test_unknown_username_is_unlocked(self, lockout):
        assert lockout.is_account_locked("ghost").locked is False

    def test_reports_attempts_while_active(self, lockout, admin):
        lockout.record_failed_attempt("admin")

        status = lockout.is_account_locked("admin")

        assert status.locked is False
        assert status.failed_attempts == 1
        assert status.to_dict() == {"locked": False, "failed_attempts": 1}

    def test_locked_account(self, lockout, admin):
        with freeze_time(START):
            for _ in range(3):
                lockout.record_failed_attempt("admin")

        with freeze_time(START + timedelta(hours=11, minutes=59)):
            status = lockout.is_account_locked("admin")

        assert status.locked is True
        assert status.locked_until == START + timedelta(hours=12)
        assert status.failed_attempts == 3
        assert status.to_dict()["locked_until"] == (START + timedelta(hours=12)).isoformat()

    def test_expired_lock_heals_on_read(self, lockout, store, admin):
        with freeze_time(START):
            for _ in range(3):
                lockout.record_failed_attempt("admin")

        with freeze_time(START + timedelta(hours=12, seconds=1)):
            status = lockout.is_account_locked("admin")

        assert status == LockStatus(locked=False)
        user = store.get_by_username("admin")
        assert user.failed_attempts == 0
        assert user.locked_until is None
        assert user.last_failed_attempt is None

    def test_healing_is_idempotent(self, lockout, admin):
        with freeze_time(START):
            for _ in range(3):
                lockout.record_failed_attempt("admin")

        with freeze_time(START + timedelta(days=1)):
            first = lockout.is_account_locked("admin")
            second = lockout.is_account_locked("admin")

        assert first == second == LockStatus(locked=False)

    def test_reset_failed_attempts(self, lockout, admin):
        lockout.record_failed_attempt("admin")

        user = lockout.reset_failed_attempts("admin")

        assert user.failed_attempts == 0

    def test_unlock(self, lockout, admin):
        for _ in range(3):
            lockout.record_failed_attempt("admin")

        lockout.unlock("admin")

        assert lockout.is_account_locked("admin").locked is False
