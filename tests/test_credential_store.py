"""Tests for the SQLite credential store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from folioauth.core.auth.argon2_auth import Argon2Hasher
from folioauth.core.auth.credential_store import CredentialStore, UserRole
from folioauth.core.errors import DuplicateUserError

from tests.conftest import STRONG_PASSWORD


class TestCreateAndLookup:

    def test_empty_store_has_no_users(self, store):
        assert store.has_any_users() is False
        assert store.list_users() == []

    def test_create_user(self, store):
        user = store.create("admin", "admin@example.com", STRONG_PASSWORD)

        assert user.id > 0
        assert user.username == "admin"
        assert user.role is UserRole.ADMIN
        assert user.failed_attempts == 0
        assert user.locked_until is None
        assert user.last_failed_attempt is None
        assert store.has_any_users() is True

    def test_password_is_hashed(self, store, admin):
        assert admin.password_hash != STRONG_PASSWORD
        assert admin.password_hash.startswith("$argon2id$")

    def test_lookups(self, store, admin):
        assert store.get_by_id(admin.id).username == "admin"
        assert store.get_by_username("admin").id == admin.id
        assert store.get_by_email("admin@example.com").id == admin.id
        assert store.get_by_username("nobody") is None
        assert store.get_by_id(9999) is None

    def test_usernames_are_case_insensitive(self, store, admin):
        assert store.get_by_username("ADMIN").id == admin.id

    def test_duplicate_username_rejected(self, store, admin):
        with pytest.raises(DuplicateUserError):
            store.create("admin", "other@example.com", STRONG_PASSWORD)

    def test_duplicate_email_rejected(self, store, admin):
        with pytest.raises(DuplicateUserError):
            store.create("other", "ADMIN@example.com", STRONG_PASSWORD)

    def test_state_survives_reopen(self, tmp_path, hasher, store, admin):
        reopened = CredentialStore(tmp_path / "auth.db", hasher=hasher)

        assert reopened.get_by_username("admin").id == admin.id


class TestPasswordVerification:

    def test_verify_correct_password(self, store, admin):
        assert store.verify(STRONG_PASSWORD, admin.password_hash) is True

    def test_verify_wrong_password(self, store, admin):
        assert store.verify(STRONG_PASSWORD + "!", admin.password_hash) is False

    def test_verify_garbage_hash(self, store):
        assert store.verify(STRONG_PASSWORD, "not-a-hash") is False

    def test_same_password_hashes_differently(self, store, admin):
        other = store.create("second", "second@example.com", STRONG_PASSWORD)

        assert other.password_hash != admin.password_hash

    def test_verify_dummy_does_not_raise(self, store):
        store.verify_dummy("whatever")
        store.verify_dummy("")

    def test_rehash_after_cost_increase(self, tmp_path, admin):
        stronger = CredentialStore(
            tmp_path / "auth.db",
            hasher=Argon2Hasher(memory_cost=19456, time_cost=3, parallelism=1),
        )

        assert stronger.rehash_if_needed(admin, STRONG_PASSWORD) is True

        upgraded = stronger.get_by_username("admin")
        assert upgraded.password_hash != admin.password_hash
        assert ",t=3," in upgraded.password_hash
        assert stronger.verify(STRONG_PASSWORD, upgraded.password_hash) is True
        assert stronger.rehash_if_needed(upgraded, STRONG_PASSWORD) is False

    def test_no_rehash_at_current_cost(self, store, admin):
        assert store.rehash_if_needed(admin, STRONG_PASSWORD) is False
        assert store.get_by_username("admin").password_hash == admin.password_hash


class TestPublicProjection:

    def test_public_dict_has_no_hash(self, admin):
        body = admin.to_public_dict()

        assert set(body) == {"id", "username", "email", "role", "created_at"}
        assert body["role"] == "admin"

    def test_repr_hides_hash(self, admin):
        assert admin.password_hash not in repr(admin)
        assert "argon2" not in repr(admin)


class TestFailureCounters:

    def test_increment_below_threshold(self, store, admin):
        now = datetime.now(timezone.utc)

        user = store.increment_failed_attempts("admin", 3, timedelta(hours=12), now)

        assert user.failed_attempts == 1
        assert user.last_failed_attempt == now
        assert user.locked_until is None

    def test_increment_reaching_threshold_sets_lock(self, store, admin):
        now = datetime.now(timezone.utc)
        for _ in range(3):
            user = store.increment_failed_attempts("admin", 3, timedelta(hours=12), now)

        assert user.failed_attempts == 3
        assert user.locked_until == now + timedelta(hours=12)

    def test_increment_unknown_user(self, store):
        now = datetime.now(timezone.utc)

        assert store.increment_failed_attempts("ghost", 3, timedelta(hours=12), now) is None

    def test_concurrent_increments_are_not_lost(self, store, admin):
        """Test that parallel failures each observe a distinct count."""
        now = datetime.now(timezone.utc)
        seen = []
        seen_lock = threading.Lock()

        def fail():
            user = store.increment_failed_attempts("admin", 100, timedelta(hours=12), now)
            with seen_lock:
                seen.append(user.failed_attempts)

        threads = [threading.Thread(target=fail) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(seen) == list(range(1, 9))
        assert store.get_by_username("admin").failed_attempts == 8

    def test_reset_clears_everything(self, store, admin):
        now = datetime.now(timezone.utc)
        for _ in range(3):
            store.increment_failed_attempts("admin", 3, timedelta(hours=12), now)

        user = store.reset_failed_attempts("admin")

        assert user.failed_attempts == 0
        assert user.locked_until is None
        assert user.last_failed_attempt is None

    def test_clear_expired_lock_only_when_expired(self, store, admin):
        now = datetime.now(timezone.utc)
        for _ in range(3):
            store.increment_failed_attempts("admin", 3, timedelta(hours=12), now)

        assert store.clear_expired_lock("admin", now + timedelta(hours=1)) is False
        assert store.get_by_username("admin").failed_attempts == 3

        assert store.clear_expired_lock("admin", now + timedelta(hours=13)) is True
        assert store.get_by_username("admin").locked_until is None

    def test_unlock_account(self, store, admin):
        now = datetime.now(timezone.utc)
        for _ in range(3):
            store.increment_failed_attempts("admin", 3, timedelta(hours=12), now)

        assert store.unlock_account("admin").failed_attempts == 0
        assert store.unlock_account("ghost") is None
