"""
Authentication Error Taxonomy
=============================

Every failure the service reports to a caller is an ``AuthServiceError``
subclass carrying a stable machine-readable ``code``, a human-readable
message, the HTTP status it maps to, and optional extra body fields.

Unexpected failures (storage, hashing, programming errors) are never
described to the caller; the web layer collapses them to ``ServerError``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


class AuthServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    code: str = "AUTH_SERVICE_ERROR"
    status: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Wire body: ``{"error": ..., "code": ..., **extra}``."""
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        for key, value in self.extra.items():
            if value is None:
                continue
            body[key] = value.isoformat() if isinstance(value, datetime) else value
        return body


class ValidationError(AuthServiceError):
    """Malformed or insufficient input; ``details`` itemizes each problem."""

    code = "VALIDATION_ERROR"
    status = 400
    default_message = "Validation failed"

    def __init__(self, details: list[str], message: Optional[str] = None) -> None:
        self.details = list(details)
        super().__init__(message, details=self.details)


class AuthError(AuthServiceError):
    """Authentication failed."""

    code = "AUTH_ERROR"
    status = 401
    default_message = "Authentication failed"


class InvalidCredentialsError(AuthError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid username or password"

    def __init__(
        self,
        failed_attempts: Optional[int] = None,
        remaining_attempts: Optional[int] = None,
    ) -> None:
        self.failed_attempts = failed_attempts
        self.remaining_attempts = remaining_attempts
        super().__init__(
            failed_attempts=failed_attempts,
            remaining_attempts=remaining_attempts,
        )


class TokenError(AuthError):
    """Missing, invalid or expired session token, or a vanished user."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class AccountLockedError(AuthError):
    code = "ACCOUNT_LOCKED"
    status = 423
    default_message = "Account is locked due to multiple failed login attempts."

    def __init__(self, locked_until: datetime, failed_attempts: int) -> None:
        self.locked_until = locked_until
        self.failed_attempts = failed_attempts
        super().__init__(locked_until=locked_until, failed_attempts=failed_attempts)


class RateLimitError(AuthServiceError):
    code = "RATE_LIMITED"
    status = 429
    default_message = "Too many authentication attempts. Please try again later."

    def __init__(self, reset_time: datetime) -> None:
        self.reset_time = reset_time
        super().__init__(reset_time=reset_time)


class ConflictError(AuthServiceError):
    code = "CONFLICT"
    status = 409
    default_message = "Request conflicts with current state"


class SetupCompletedError(ConflictError):
    code = "SETUP_COMPLETED"
    status = 403
    default_message = "Setup has already been completed. An admin account already exists."


class DuplicateUserError(ConflictError):
    code = "DUPLICATE_USER"
    status = 409
    default_message = "A user with that username or email already exists"


class NotFoundError(AuthServiceError):
    code = "NOT_FOUND"
    status = 404
    default_message = "Resource not found"


class ServerError(AuthServiceError):
    code = "SERVER_ERROR"
    status = 500
    default_message = "Internal server error"
