"""
Session Control
================

Stateless session tokens for authenticated admins.

Security Features:
- HMAC-SHA256 signed JWTs (PyJWT)
- 256-bit minimum signing secret
- Fixed lifetime (default 24h), enforced on every verification
- Single opaque failure outcome: callers cannot tell expired from forged

Tokens are not revocable; logout is a client-side discard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Final, Optional

import jwt

from folioauth.core.auth.credential_store import User
from folioauth.security.constants import (
    MIN_TOKEN_SECRET_LENGTH,
    TOKEN_ALGORITHM,
    TOKEN_TTL_SECONDS,
)


_REQUIRED_CLAIMS: Final[tuple[str, ...]] = ("id", "username", "email", "role", "iat", "exp")


@dataclass(frozen=True, slots=True)
class SessionClaims:
    """Decoded token payload."""

    user_id: int
    username: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime

    def __repr__(self) -> str:
        return (
            f"SessionClaims(user_id={self.user_id!r}, username={self.username!r}, "
            f"expires_at={self.expires_at.isoformat()})"
        )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SessionClaims":
        return cls(
            user_id=int(payload["id"]),
            username=str(payload["username"]),
            email=str(payload["email"]),
            role=str(payload["role"]),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )


class TokenService:
    """
    Issues and verifies signed session tokens.

    Usage:
        tokens = TokenService(secret_key, ttl_seconds=86400)

        token = tokens.issue(user)
        claims = tokens.verify(token)   # None when invalid or expired
    """

    __slots__ = ("_secret_key", "_ttl", "_algorithm", "_log")

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        algorithm: str = TOKEN_ALGORITHM,
    ) -> None:
        """
        Args:
            secret_key: HMAC signing secret, at least 32 characters
            ttl_seconds: Token lifetime
            algorithm: JWS algorithm (default HS256)

        Raises:
            ValueError: If the secret is too short or the lifetime not positive
        """
        if not secret_key or len(secret_key) < MIN_TOKEN_SECRET_LENGTH:
            raise ValueError(
                f"Token secret must be at least {MIN_TOKEN_SECRET_LENGTH} characters"
            )
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self._secret_key = secret_key
        self._ttl = timedelta(seconds=ttl_seconds)
        self._algorithm = algorithm
        self._log = logging.getLogger("folioauth.tokens")

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def issue(self, user: User) -> str:
        """Sign a token carrying the user's identity claims."""
        now = datetime.now(timezone.utc)
        payload = {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "role": user.role.value,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        token: str = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return token

    def verify(self, token: Optional[str]) -> Optional[SessionClaims]:
        """
        Verify signature and expiry.

        Returns:
            SessionClaims if the token is authentic and current, else None
        """
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": list(_REQUIRED_CLAIMS)},
            )
            return SessionClaims.from_payload(payload)
        except jwt.ExpiredSignatureError:
            self._log.debug("Rejected expired session token")
            return None
        except jwt.PyJWTError as e:
            self._log.debug("Rejected session token: %s", type(e).__name__)
            return None
        except (KeyError, TypeError, ValueError):
            self._log.debug("Rejected session token with malformed claims")
            return None
