"""
Security module - Fixed security parameters and request throttling.
"""

from folioauth.security.constants import (
    LOCKOUT_DURATION_SECONDS,
    MAX_FAILED_ATTEMPTS,
    MIN_PASSWORD_LENGTH,
    RATE_LIMIT_MAX_ATTEMPTS,
    RATE_LIMIT_WINDOW_SECONDS,
    TOKEN_TTL_SECONDS,
)
from folioauth.security.rate_limiter import (
    CounterStore,
    InMemoryCounterStore,
    RateLimitDecision,
    RateLimiter,
    RateLimitWindow,
)

__all__ = [
    # Constants
    "LOCKOUT_DURATION_SECONDS",
    "MAX_FAILED_ATTEMPTS",
    "MIN_PASSWORD_LENGTH",
    "RATE_LIMIT_MAX_ATTEMPTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "TOKEN_TTL_SECONDS",
    # Rate limiting
    "CounterStore",
    "InMemoryCounterStore",
    "RateLimitDecision",
    "RateLimiter",
    "RateLimitWindow",
]
