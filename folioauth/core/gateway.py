"""
Authentication Gateway
======================

Transport-independent implementation of the admin auth endpoints.

Each public method takes the decoded request body (a mapping, possibly
empty) and returns the success body as a dict, or raises an
``AuthServiceError`` subclass that the web layer serializes verbatim.

Security Features:
- Rate limit checked before any credential work
- Lock gate checked before the password is verified
- Identical error for unknown user and wrong password
- Unknown usernames still pay one Argon2 verification
- One-shot setup, serialized against concurrent submissions
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, Mapping, Optional

from folioauth.core.auth.argon2_auth import Argon2Hasher
from folioauth.core.auth.credential_store import CredentialStore, User, UserRole
from folioauth.core.auth.lockout import LockoutStateMachine, LockState
from folioauth.core.auth.password_policy import (
    password_strength_label,
    password_strength_score,
    validate_password,
)
from folioauth.core.auth.session_control import TokenService
from folioauth.core.config import AuthConfig
from folioauth.core.errors import (
    AccountLockedError,
    InvalidCredentialsError,
    RateLimitError,
    SetupCompletedError,
    TokenError,
    ValidationError,
)
from folioauth.security.rate_limiter import CounterStore, RateLimiter
from folioauth.utils.validators import validate_email_address, validate_setup_form


def _field(payload: Optional[Mapping[str, Any]], name: str) -> str:
    """String field from a request body; anything else reads as empty."""
    if not payload:
        return ""
    value = payload.get(name)
    return value if isinstance(value, str) else ""


class AuthGateway:
    """
    Admin authentication service.

    Usage:
        gateway = AuthGateway.from_config(AuthConfig.load(), secret_key)

        gateway.setup_status()
        body = gateway.login({"username": "admin", "password": "..."}, origin="10.0.0.7")
        user = gateway.authenticate(body["token"])
    """

    __slots__ = ("_store", "_lockout", "_tokens", "_limiter", "_setup_lock", "_log")

    def __init__(
        self,
        store: CredentialStore,
        lockout: LockoutStateMachine,
        tokens: TokenService,
        limiter: RateLimiter,
    ) -> None:
        self._store = store
        self._lockout = lockout
        self._tokens = tokens
        self._limiter = limiter
        self._setup_lock = threading.Lock()
        self._log = logging.getLogger("folioauth.gateway")

    @classmethod
    def from_config(
        cls,
        config: AuthConfig,
        secret_key: str,
        counter_store: Optional[CounterStore] = None,
        hasher: Optional[Argon2Hasher] = None,
    ) -> "AuthGateway":
        """Wire the default components from configuration."""
        security = config.security
        hasher = hasher or Argon2Hasher(
            memory_cost=security.argon2_memory_cost,
            time_cost=security.argon2_time_cost,
            parallelism=security.argon2_parallelism,
        )
        store = CredentialStore(config.paths.database_path, hasher=hasher)
        lockout = LockoutStateMachine(
            store,
            max_failed_attempts=security.max_failed_attempts,
            lockout_duration=timedelta(seconds=security.lockout_duration_seconds),
        )
        tokens = TokenService(secret_key, ttl_seconds=security.token_ttl_seconds)
        limiter = RateLimiter(
            counter_store,
            max_attempts=security.rate_limit_max_attempts,
            window_seconds=security.rate_limit_window_seconds,
        )
        return cls(store, lockout, tokens, limiter)

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def lockout(self) -> LockoutStateMachine:
        return self._lockout

    @property
    def tokens(self) -> TokenService:
        return self._tokens

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup_status(self) -> dict[str, Any]:
        return {"setup_required": not self._store.has_any_users()}

    def setup(self, payload: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        """
        Create the first admin account and sign it in.

        Raises:
            SetupCompletedError: An account already exists
            ValidationError: The form has problems (all of them listed)
        """
        username = _field(payload, "username").strip()
        email = _field(payload, "email")
        password = _field(payload, "password")
        confirm_password = _field(payload, "confirmPassword")

        with self._setup_lock:
            if self._store.has_any_users():
                self._log.warning("Rejected setup attempt: admin already exists")
                raise SetupCompletedError()

            errors = validate_setup_form(username, email, password, confirm_password)
            if errors:
                raise ValidationError(errors)

            normalized_email, _ = validate_email_address(email)
            user = self._store.create(username, normalized_email, password, UserRole.ADMIN)

        self._log.info("Initial admin account '%s' created", user.username)
        return {
            "message": "Admin account created successfully",
            "token": self._tokens.issue(user),
            "user": user.to_public_dict(),
        }

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, payload: Optional[Mapping[str, Any]], origin: str) -> dict[str, Any]:
        """
        Authenticate with username and password.

        Order: rate limit, required fields, lock gate, password check.

        Raises:
            RateLimitError: Too many requests from ``origin``
            ValidationError: Username or password missing
            AccountLockedError: Account is (or just became) locked
            InvalidCredentialsError: Unknown username or wrong password
        """
        decision = self._limiter.check(origin)
        if not decision.allowed:
            raise RateLimitError(decision.reset_time)

        username = _field(payload, "username").strip()
        password = _field(payload, "password")
        if not username or not password:
            raise ValidationError(["Username and password are required"])

        status = self._lockout.is_account_locked(username)
        if status.locked:
            self._log.info("Login refused for locked account '%s'", username)
            raise AccountLockedError(status.locked_until, status.failed_attempts)

        user = self._store.get_by_username(username)
        if user is None:
            self._store.verify_dummy(password)
            self._log.info("Failed login for unknown username from %s", origin)
            raise InvalidCredentialsError()

        if not self._store.verify(password, user.password_hash):
            updated = self._lockout.record_failed_attempt(user.username)
            if updated is None:
                raise InvalidCredentialsError()
            if LockoutStateMachine.state_of(updated) is LockState.LOCKED:
                raise AccountLockedError(updated.locked_until, updated.failed_attempts)
            raise InvalidCredentialsError(
                failed_attempts=updated.failed_attempts,
                remaining_attempts=self._lockout.remaining_attempts(updated),
            )

        self._lockout.reset_failed_attempts(user.username)
        self._store.rehash_if_needed(user, password)
        self._log.info("Admin '%s' logged in from %s", user.username, origin)
        return {
            "message": "Login successful",
            "token": self._tokens.issue(user),
            "user": user.to_public_dict(),
        }

    # ------------------------------------------------------------------
    # Token checks
    # ------------------------------------------------------------------

    def authenticate(self, token: Optional[str]) -> User:
        """
        Resolve a session token to the current user record.

        Raises:
            TokenError: NO_TOKEN, INVALID_TOKEN or USER_NOT_FOUND
            AccountLockedError: The user was locked after the token was issued
        """
        if not token:
            raise TokenError("NO_TOKEN", "Access denied. No token provided.")

        claims = self._tokens.verify(token)
        if claims is None:
            raise TokenError("INVALID_TOKEN", "Invalid or expired token.")

        user = self._store.get_by_id(claims.user_id)
        if user is None:
            raise TokenError("USER_NOT_FOUND", "User no longer exists.")

        status = self._lockout.observe(user)
        if status.locked:
            raise AccountLockedError(status.locked_until, status.failed_attempts)

        return user

    def verify(self, token: Optional[str]) -> dict[str, Any]:
        user = self.authenticate(token)
        return {"user": user.to_public_dict()}

    def logout(self, token: Optional[str]) -> dict[str, Any]:
        """
        Acknowledge a logout. Tokens are stateless, so nothing is revoked
        and the call succeeds whatever token (if any) accompanies it.
        """
        claims = self._tokens.verify(token)
        if claims is not None:
            self._log.info("Admin '%s' logged out", claims.username)
        return {"message": "Logged out successfully"}

    # ------------------------------------------------------------------
    # Public queries
    # ------------------------------------------------------------------

    def lockout_status(self, payload: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        username = _field(payload, "username").strip()
        if not username:
            raise ValidationError(["Username is required"])
        return self._lockout.is_account_locked(username).to_dict()

    def password_strength(self, payload: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        password = _field(payload, "password")
        score = password_strength_score(password)
        body = validate_password(password).to_dict()
        body["score"] = score
        body["label"] = password_strength_label(score)
        return body
