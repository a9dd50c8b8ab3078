"""Tests for the folioauth-unlock command."""

import pytest

from folioauth.core.auth.credential_store import CredentialStore
from folioauth.core.auth.lockout import LockoutStateMachine
from folioauth.scripts.unlock_admin import main

from tests.conftest import STRONG_PASSWORD


@pytest.fixture
def db_store(tmp_path, hasher):
    store = CredentialStore(tmp_path / "auth.db", hasher=hasher)
    store.create("admin", "admin@example.com", STRONG_PASSWORD)
    return store


def _db_arg(tmp_path):
    return ["--db", str(tmp_path / "auth.db")]


def test_unlocks_locked_account(tmp_path, db_store, capsys):
    lockout = LockoutStateMachine(db_store)
    for _ in range(3):
        lockout.record_failed_attempt("admin")

    exit_code = main(["admin", *_db_arg(tmp_path)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Failed attempts: 3" in out
    assert "Locked: yes" in out
    assert "unlocked" in out
    assert lockout.is_account_locked("admin").locked is False
    assert db_store.get_by_username("admin").failed_attempts == 0


def test_nothing_to_unlock(tmp_path, db_store, capsys):
    exit_code = main(["admin", *_db_arg(tmp_path)])

    assert exit_code == 0
    assert "not locked" in capsys.readouterr().out


def test_unknown_user_lists_accounts(tmp_path, db_store, capsys):
    exit_code = main(["ghost", *_db_arg(tmp_path)])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "'ghost' not found" in out
    assert "admin (admin@example.com) - admin" in out


def test_missing_database(tmp_path, capsys):
    exit_code = main(["admin", "--db", str(tmp_path / "missing.db")])

    assert exit_code == 1
    assert "database not found" in capsys.readouterr().out


def test_username_is_required():
    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == 2
