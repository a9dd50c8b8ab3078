"""
FolioAuth Authentication Module
===============================

Provides admin authentication with:
- Argon2id password hashing
- Password policy shared with the client
- Account lockout after repeated failures
- Signed, expiring session tokens

Security Properties:
- Memory-hard password hashing
- Constant-time verification
- Atomic failed-attempt counting
"""

from folioauth.core.auth.argon2_auth import (
    Argon2Hasher,
    HashingError,
)
from folioauth.core.auth.credential_store import (
    CredentialStore,
    User,
    UserRole,
)
from folioauth.core.auth.lockout import (
    LockoutStateMachine,
    LockState,
    LockStatus,
)
from folioauth.core.auth.password_policy import (
    PasswordCheck,
    password_strength_label,
    password_strength_score,
    validate_password,
)
from folioauth.core.auth.session_control import (
    SessionClaims,
    TokenService,
)

__all__ = [
    "Argon2Hasher",
    "HashingError",
    "CredentialStore",
    "User",
    "UserRole",
    "LockoutStateMachine",
    "LockState",
    "LockStatus",
    "PasswordCheck",
    "password_strength_label",
    "password_strength_score",
    "validate_password",
    "SessionClaims",
    "TokenService",
]
