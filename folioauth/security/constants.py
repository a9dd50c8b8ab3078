"""
Security Constants
==================

Fixed security parameters for the admin authentication service.
Tunable values (lockout window, rate-limit window, token lifetime)
live in ``folioauth.core.config.SecurityConfig``; the defaults there
are taken from here.
"""

from typing import Final

# Password Requirements
MIN_PASSWORD_LENGTH: Final[int] = 15
MIN_PASSWORD_SPECIALS: Final[int] = 2
MIN_PASSWORD_DIGITS: Final[int] = 2
PASSWORD_SPECIAL_CHARACTERS: Final[str] = "!@#$%^&*()_+-=[]{}|;:,.<>?"

# Username Requirements
MIN_USERNAME_LENGTH: Final[int] = 3
MAX_USERNAME_LENGTH: Final[int] = 50
USERNAME_PATTERN: Final[str] = r"^[A-Za-z0-9_-]+$"

# Account Lockout
MAX_FAILED_ATTEMPTS: Final[int] = 3
LOCKOUT_DURATION_SECONDS: Final[int] = 12 * 60 * 60

# Per-origin Rate Limiting
RATE_LIMIT_WINDOW_SECONDS: Final[int] = 15 * 60
RATE_LIMIT_MAX_ATTEMPTS: Final[int] = 10

# Session Tokens
TOKEN_ALGORITHM: Final[str] = "HS256"
TOKEN_TTL_SECONDS: Final[int] = 24 * 60 * 60
MIN_TOKEN_SECRET_LENGTH: Final[int] = 32
AUTH_COOKIE_NAME: Final[str] = "auth_token"
