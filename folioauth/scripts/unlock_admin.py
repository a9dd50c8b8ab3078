#!/usr/bin/env python3
"""
Manual admin account unlock.

Resets the failed-attempt counter and clears any lockout for one
account, for operators with direct access to the server's database.

Usage:
    folioauth-unlock admin
    folioauth-unlock admin --db /srv/folioauth/folioauth.db
"""

from __future__ import annotations

import argparse
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from folioauth.core.auth.credential_store import CredentialStore
from folioauth.core.auth.lockout import LockoutStateMachine
from folioauth.core.config import AuthConfig
from folioauth.core.logging import get_secure_logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="folioauth-unlock",
        description="Reset failed login attempts and remove the lockout for an admin account.",
    )
    parser.add_argument("username", help="Account to unlock")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database (default: configured data directory)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def unlock_account(store: CredentialStore, username: str) -> bool:
    """Print the account's status and unlock it. False if the user is unknown."""
    user = store.get_by_username(username)
    if user is None:
        print(f"Error: user '{username}' not found.")
        print("\nAvailable users:")
        users = store.list_users()
        if not users:
            print("   No users found in database.")
        for u in users:
            print(f"   - {u.username} ({u.email}) - {u.role.value}")
        return False

    status = LockoutStateMachine(store).is_account_locked(username)
    if not status.locked and user.failed_attempts == 0:
        print(f"Account '{username}' is not locked and has no failed attempts.")
        return True

    print(f"Current status for '{username}':")
    print(f"   Failed attempts: {user.failed_attempts}")
    print(f"   Locked: {'yes' if status.locked else 'no'}")
    if status.locked_until is not None:
        print(f"   Locked until: {status.locked_until.isoformat()}")

    store.unlock_account(username)
    print(f"\nAccount '{username}' unlocked. Failed attempts reset to 0.")
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    log = get_secure_logger(
        "folioauth.scripts.unlock",
        level="DEBUG" if args.verbose else "WARNING",
    )

    db_path = args.db or AuthConfig.get_instance().paths.database_path
    if not db_path.exists():
        print(f"Error: database not found at {db_path}")
        return 1

    print(f"Target username: {args.username}")
    print(f"Timestamp: {datetime.now(timezone.utc).isoformat()}\n")

    try:
        store = CredentialStore(db_path)
        ok = unlock_account(store, args.username)
    except sqlite3.Error as e:
        log.error("Database error while unlocking '%s': %s", args.username, e)
        print(f"Error: could not update the database at {db_path}")
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
