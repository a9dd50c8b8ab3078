"""
Password Policy
===============

Pure password strength rules shared by the server and the client.

Rules (all must pass):
- at least 15 characters
- at least 2 special characters from ``!@#$%^&*()_+-=[]{}|;:,.<>?``
- at least 2 decimal digits
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from folioauth.security.constants import (
    MIN_PASSWORD_DIGITS,
    MIN_PASSWORD_LENGTH,
    MIN_PASSWORD_SPECIALS,
    PASSWORD_SPECIAL_CHARACTERS,
)


_SPECIALS: Final[frozenset[str]] = frozenset(PASSWORD_SPECIAL_CHARACTERS)

_STRENGTH_LABELS: Final[tuple[str, ...]] = (
    "Very Weak", "Weak", "Fair", "Strong", "Very Strong",
)


@dataclass(frozen=True, slots=True)
class PasswordCheck:
    """Outcome of a policy check. ``errors`` is empty iff ``is_valid``."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


def count_special_characters(password: str) -> int:
    return sum(1 for c in password if c in _SPECIALS)


def count_digits(password: str) -> int:
    # str.isdigit() accepts non-ASCII digits; the policy is 0-9 only
    return sum(1 for c in password if "0" <= c <= "9")


def validate_password(password: str) -> PasswordCheck:
    """
    Check a password against the policy.

    Errors are reported in a fixed order: length, special characters,
    digits. Each unmet rule contributes exactly one message.
    """
    password = password or ""
    errors: list[str] = []

    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if count_special_characters(password) < MIN_PASSWORD_SPECIALS:
        errors.append(
            f"Password must contain at least {MIN_PASSWORD_SPECIALS} special characters "
            f"({PASSWORD_SPECIAL_CHARACTERS})"
        )

    if count_digits(password) < MIN_PASSWORD_DIGITS:
        errors.append(f"Password must contain at least {MIN_PASSWORD_DIGITS} numbers")

    return PasswordCheck(is_valid=not errors, errors=errors)


def password_strength_score(password: str) -> int:
    """Coarse 0-4 strength score used for UX meters."""
    if not password:
        return 0

    score = 0
    if len(password) >= MIN_PASSWORD_LENGTH:
        score += 1
    if len(password) >= 20:
        score += 1
    if any(c.islower() for c in password) and any(c.isupper() for c in password):
        score += 1
    if count_digits(password) >= MIN_PASSWORD_DIGITS:
        score += 1
    if count_special_characters(password) >= MIN_PASSWORD_SPECIALS:
        score += 1

    return min(score, 4)


def password_strength_label(score: int) -> str:
    if 0 <= score < len(_STRENGTH_LABELS):
        return _STRENGTH_LABELS[score]
    return _STRENGTH_LABELS[0]
