"""
Credential Store
================

SQLite-backed storage for admin accounts and their lockout counters.

Security Features:
- Argon2id password hashes (never returned in public projections)
- Case-insensitive unique usernames and emails
- Atomic increment-and-fetch of the failed-attempt counter
- Parameterized queries only
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Final, Iterator, List, Optional

from folioauth.core.auth.argon2_auth import Argon2Hasher
from folioauth.core.errors import DuplicateUserError


def _to_db(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC ISO string, so stored timestamps compare lexically."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class UserRole(Enum):
    """User roles. The service only ever creates admins."""
    ADMIN = "admin"

    @classmethod
    def from_string(cls, value: str) -> "UserRole":
        return cls(value.lower())


@dataclass
class User:
    """
    Admin account record.

    Note: password_hash is never exposed in repr or in to_public_dict().
    """
    id: int
    username: str
    email: str
    password_hash: str
    role: UserRole
    created_at: datetime
    updated_at: datetime
    failed_attempts: int = 0
    last_failed_attempt: Optional[datetime] = None
    locked_until: Optional[datetime] = None

    def __repr__(self) -> str:
        return (
            f"User(id={self.id!r}, username={self.username!r}, "
            f"role={self.role.value}, failed_attempts={self.failed_attempts})"
        )

    def to_public_dict(self) -> dict[str, Any]:
        """Projection safe to return to API callers."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "created_at": _to_db(self.created_at),
        }


class CredentialStore:
    """
    Owns the ``users`` table.

    Usage:
        store = CredentialStore(db_path)

        user = store.create("alice", "alice@example.com", "CorrectHorse12!!zz")
        record = store.get_by_username("alice")
        ok = store.verify("CorrectHorse12!!zz", record.password_hash)

    Lockout policy (thresholds, durations) is not decided here; the
    store only offers the atomic row updates that
    ``LockoutStateMachine`` composes.
    """

    __slots__ = ("_db_path", "_hasher", "_dummy_hash", "_log")

    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL COLLATE NOCASE,
        email TEXT UNIQUE NOT NULL COLLATE NOCASE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'admin',
        failed_attempts INTEGER NOT NULL DEFAULT 0,
        last_failed_attempt TEXT,
        locked_until TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_users_username ON users(username);
    CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
    """

    # Used to keep unknown-username logins as slow as real ones
    _DUMMY_PASSWORD: Final[str] = "folioauth-timing-equalisation"

    def __init__(self, db_path: Path | str, hasher: Optional[Argon2Hasher] = None) -> None:
        """
        Initialize the store and create the schema if missing.

        Args:
            db_path: Path to SQLite database file
            hasher: Password hasher (default: Argon2Hasher with default cost)
        """
        self._db_path = Path(db_path)
        self._hasher = hasher or Argon2Hasher()
        self._dummy_hash: Optional[str] = None
        self._log = logging.getLogger("folioauth.store")
        self.initialize_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # Autocommit mode; multi-statement work opens its own transaction
        conn = sqlite3.connect(self._db_path, timeout=10.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """IMMEDIATE transaction: takes the write lock before the first read."""
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def initialize_db(self) -> None:
        """Create the users table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(self._SCHEMA)

    # ------------------------------------------------------------------
    # Creation and password checks
    # ------------------------------------------------------------------

    def create(
        self,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.ADMIN,
    ) -> User:
        """
        Create a user with a freshly hashed password.

        Raises:
            DuplicateUserError: If the username or email is already taken
            HashingError: If hashing fails
        """
        password_hash = self._hasher.hash(password)
        now = _to_db(datetime.now(timezone.utc))

        try:
            with self._connect() as conn:
                cursor = conn.execute("""
                    INSERT INTO users (username, email, password_hash, role, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (username, email, password_hash, role.value, now, now))
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateUserError() from e

        self._log.info("Created %s account '%s' (id=%s)", role.value, username, user_id)
        user = self.get_by_id(user_id)
        assert user is not None
        return user

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time password check against a stored hash."""
        return self._hasher.verify(password, password_hash)

    def rehash_if_needed(self, user: User, password: str) -> bool:
        """
        Re-hash a verified password whose stored hash uses stale Argon2 costs.

        Call only after ``verify`` succeeded for ``password``.

        Returns:
            True if the stored hash was replaced
        """
        if not self._hasher.needs_rehash(user.password_hash):
            return False

        new_hash = self._hasher.hash(password)
        with self._connect() as conn:
            result = conn.execute("""
                UPDATE users SET password_hash = ?, updated_at = ?
                WHERE id = ? AND password_hash = ?
            """, (new_hash, _to_db(datetime.now(timezone.utc)), user.id, user.password_hash))

        if result.rowcount:
            self._log.info("Password hash for '%s' upgraded to current parameters", user.username)
        return result.rowcount > 0

    def verify_dummy(self, password: str) -> None:
        """Spend one verification's worth of time for an unknown username."""
        if self._dummy_hash is None:
            self._dummy_hash = self._hasher.hash(self._DUMMY_PASSWORD)
        self._hasher.verify(password or self._DUMMY_PASSWORD[::-1], self._dummy_hash)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return self._row_to_user(row) if row else None

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY username").fetchall()
        return [self._row_to_user(row) for row in rows]

    def has_any_users(self) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT EXISTS(SELECT 1 FROM users) AS present").fetchone()
        return bool(row["present"])

    # ------------------------------------------------------------------
    # Lockout counters
    # ------------------------------------------------------------------

    def increment_failed_attempts(
        self,
        username: str,
        lock_threshold: int,
        lock_duration: timedelta,
        now: datetime,
    ) -> Optional[User]:
        """
        Atomically bump ``failed_attempts`` and return the updated row.

        When the new count reaches ``lock_threshold``, ``locked_until`` is
        set to ``now + lock_duration``. The update and the read happen in
        one IMMEDIATE transaction, so concurrent failures for the same
        username each observe their own increment.

        Returns:
            Updated User, or None if the username does not exist
        """
        stamp = _to_db(now)
        lock_until = _to_db(now + lock_duration)

        with self._transaction() as conn:
            result = conn.execute("""
                UPDATE users
                SET failed_attempts = failed_attempts + 1,
                    last_failed_attempt = ?,
                    locked_until = CASE
                        WHEN failed_attempts + 1 >= ? THEN ?
                        ELSE locked_until
                    END,
                    updated_at = ?
                WHERE username = ?
            """, (stamp, lock_threshold, lock_until, stamp, username))

            if result.rowcount == 0:
                return None

            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()

        return self._row_to_user(row)

    def reset_failed_attempts(self, username: str) -> Optional[User]:
        """Clear counter, lock and last-failure stamp."""
        now = _to_db(datetime.now(timezone.utc))
        with self._transaction() as conn:
            result = conn.execute("""
                UPDATE users
                SET failed_attempts = 0, locked_until = NULL,
                    last_failed_attempt = NULL, updated_at = ?
                WHERE username = ?
            """, (now, username))

            if result.rowcount == 0:
                return None

            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()

        return self._row_to_user(row)

    def clear_expired_lock(self, username: str, now: datetime) -> bool:
        """
        Reset the counters only if the stored lock has expired by ``now``.

        The condition is evaluated inside the UPDATE, so a lock written by
        a concurrent failure after the caller's read is never cleared.

        Returns:
            True if an expired lock was cleared
        """
        stamp = _to_db(now)
        with self._connect() as conn:
            result = conn.execute("""
                UPDATE users
                SET failed_attempts = 0, locked_until = NULL,
                    last_failed_attempt = NULL, updated_at = ?
                WHERE username = ? AND locked_until IS NOT NULL AND locked_until <= ?
            """, (stamp, username, stamp))
        return result.rowcount > 0

    def unlock_account(self, username: str) -> Optional[User]:
        """Manual unlock by an operator."""
        user = self.reset_failed_attempts(username)
        if user is not None:
            self._log.warning("Account '%s' unlocked manually", username)
        return user

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=UserRole.from_string(row["role"]),
            failed_attempts=row["failed_attempts"],
            last_failed_attempt=_from_db(row["last_failed_attempt"]),
            locked_until=_from_db(row["locked_until"]),
            created_at=_from_db(row["created_at"]),
            updated_at=_from_db(row["updated_at"]),
        )
