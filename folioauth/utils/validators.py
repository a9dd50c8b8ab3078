"""
Validation Utilities
====================

Identity field validation for the one-time admin setup flow.

These checks are shared by the gateway (authoritative) and the client
(pre-submit UX); each returns itemized, human-readable messages rather
than raising, so callers can report every problem at once.
"""

from __future__ import annotations

import re
from typing import Final, Optional

from email_validator import EmailNotValidError, validate_email

from folioauth.core.auth.password_policy import validate_password
from folioauth.security.constants import (
    MAX_USERNAME_LENGTH,
    MIN_USERNAME_LENGTH,
    USERNAME_PATTERN,
)


_USERNAME_RE: Final[re.Pattern[str]] = re.compile(USERNAME_PATTERN)


def validate_username(username: Optional[str]) -> list[str]:
    """
    Validate a username.

    Returns:
        List of error messages (empty when valid)
    """
    if not username:
        return ["Username is required"]

    errors: list[str] = []
    if len(username) < MIN_USERNAME_LENGTH:
        errors.append(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")
    if len(username) > MAX_USERNAME_LENGTH:
        errors.append(f"Username must not exceed {MAX_USERNAME_LENGTH} characters")
    if not _USERNAME_RE.match(username):
        errors.append("Username can only contain letters, numbers, underscores, and hyphens")
    return errors


def validate_email_address(email: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Validate an email address (syntax only, no DNS lookup).

    Returns:
        ``(normalized_email, None)`` when valid, ``(None, error)`` otherwise
    """
    if not email or not email.strip():
        return None, "Email is required"

    try:
        validated = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return None, "Invalid email format"
    return validated.normalized, None


def validate_setup_form(
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
) -> list[str]:
    """
    Validate the admin setup payload.

    Order of messages: username, email, password policy, confirmation.
    """
    errors = validate_username(username)

    _, email_error = validate_email_address(email)
    if email_error:
        errors.append(email_error)

    if not password:
        errors.append("Password is required")
    else:
        errors.extend(validate_password(password).errors)

    if not confirm_password:
        errors.append("Please confirm your password")
    elif password != confirm_password:
        errors.append("Passwords do not match")

    return errors
