"""
Argon2id Password Hashing
=========================

Salted, adaptive-cost password hashing for admin credentials.

Security Properties:
- Memory-hard (resistant to GPU/ASIC attacks)
- Random per-hash salt, embedded in the encoded string
- Constant-time verification (argon2-cffi compares digests itself)
- Tunable cost; defaults keep one verification in the tens of
  milliseconds on commodity hardware

Parameters (argon2-cffi RFC 9106 low-memory profile):
- memory_cost: 65536 KiB (64 MB)
- time_cost: 3 iterations
- parallelism: 4 lanes
"""

from __future__ import annotations

from typing import Final

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


ARGON2_MEMORY_COST: Final[int] = 65536  # KiB
ARGON2_TIME_COST: Final[int] = 3
ARGON2_PARALLELISM: Final[int] = 4
ARGON2_HASH_LENGTH: Final[int] = 32
ARGON2_SALT_LENGTH: Final[int] = 16

# OWASP floor for Argon2id: m=19 MiB, t=2
MIN_MEMORY_COST: Final[int] = 19456
MIN_TIME_COST: Final[int] = 2


class HashingError(RuntimeError):
    """Raised when the hashing backend itself fails."""
    pass


class Argon2Hasher:
    """
    Argon2id password hasher with secure defaults.

    Usage:
        hasher = Argon2Hasher()

        encoded = hasher.hash("user_password")
        store(encoded)

        is_valid = hasher.verify("user_password", encoded)

    Security Notes:
        - ``verify`` never raises on mismatch or on a malformed hash; it
          returns False so callers cannot distinguish the two
        - Parameters below the OWASP floor are rejected at construction
    """

    __slots__ = ("_hasher",)

    def __init__(
        self,
        memory_cost: int = ARGON2_MEMORY_COST,
        time_cost: int = ARGON2_TIME_COST,
        parallelism: int = ARGON2_PARALLELISM,
    ) -> None:
        """
        Initialize the Argon2id hasher.

        Args:
            memory_cost: Memory usage in KiB (default: 65536 = 64MB)
            time_cost: Number of iterations (default: 3)
            parallelism: Degree of parallelism (default: 4)
        """
        if memory_cost < MIN_MEMORY_COST:
            raise ValueError(f"memory_cost must be at least {MIN_MEMORY_COST} KiB")
        if time_cost < MIN_TIME_COST:
            raise ValueError(f"time_cost must be at least {MIN_TIME_COST}")
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")

        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=ARGON2_HASH_LENGTH,
            salt_len=ARGON2_SALT_LENGTH,
            type=Type.ID,
        )

    def hash(self, password: str) -> str:
        """
        Hash a password using Argon2id.

        Returns:
            Encoded ``$argon2id$v=19$m=...,t=...,p=...$salt$hash`` string

        Raises:
            ValueError: If the password is empty
            HashingError: If the backend fails
        """
        if not password:
            raise ValueError("Password cannot be empty")

        try:
            return self._hasher.hash(password)
        except Exception as e:
            raise HashingError("Failed to hash password") from e

    def verify(self, password: str, encoded: str) -> bool:
        """
        Verify a password against an encoded hash.

        Returns:
            True if password matches, False otherwise
        """
        if not password or not encoded:
            return False

        try:
            return self._hasher.verify(encoded, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, encoded: str) -> bool:
        """True if the hash was produced with different parameters."""
        try:
            return self._hasher.check_needs_rehash(encoded)
        except InvalidHashError:
            return True
