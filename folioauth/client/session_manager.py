"""
Client Session Manager
======================

Client-side counterpart of the admin auth API: keeps the session token,
rehydrates it on start-up, decides between setup and login, and tracks
account lockout for display.

Local password and form checks mirror the server's rules for early
feedback only; the server remains the authority.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from folioauth.client.countdown import LockoutCountdown
from folioauth.client.storage import TokenStorage
from folioauth.core.auth.password_policy import PasswordCheck, validate_password
from folioauth.utils.validators import validate_setup_form


log = logging.getLogger("folioauth.client")

NETWORK_ERROR_MESSAGE = "Network error. Please try again."


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class LoginResult:
    success: bool
    message: Optional[str] = None
    code: Optional[str] = None
    user: Optional[dict[str, Any]] = None
    locked_until: Optional[datetime] = None
    failed_attempts: Optional[int] = None
    remaining_attempts: Optional[int] = None
    reset_time: Optional[datetime] = None
    details: list[str] = field(default_factory=list)


@dataclass
class SetupResult:
    success: bool
    message: Optional[str] = None
    code: Optional[str] = None
    user: Optional[dict[str, Any]] = None
    details: list[str] = field(default_factory=list)


@dataclass
class LockoutInfo:
    """What the login screen shows about the last username it tried."""

    username: Optional[str] = None
    locked: bool = False
    locked_until: Optional[datetime] = None
    failed_attempts: Optional[int] = None
    time_remaining: Optional[str] = None

    @property
    def warning(self) -> bool:
        return not self.locked and bool(self.failed_attempts)


class ClientSessionManager:
    """
    Usage:
        with ClientSessionManager("https://example.com", TokenStorage(path)) as session:
            session.initialize()
            if session.setup_required:
                session.create_admin_account(username, email, password, password)
            elif not session.is_authenticated:
                result = session.login(username, password)
    """

    def __init__(
        self,
        base_url: str,
        storage: TokenStorage,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._storage = storage
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)
        self._lock = threading.RLock()

        self._token: Optional[str] = None
        self._user: Optional[dict[str, Any]] = None
        self._setup_required = False
        self._is_loading = True
        self._lockout = LockoutInfo()
        self._countdown: Optional[LockoutCountdown] = None

    def __enter__(self) -> "ClientSessionManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[dict[str, Any]]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token and self._user)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def setup_required(self) -> bool:
        return self._setup_required

    @property
    def lockout(self) -> LockoutInfo:
        return self._lockout

    @property
    def countdown(self) -> Optional[LockoutCountdown]:
        return self._countdown

    def _set_session(self, token: str, user: dict[str, Any]) -> None:
        with self._lock:
            self._token = token
            self._user = user
        self._storage.save(token, user)

    def _clear_session(self) -> None:
        with self._lock:
            self._token = None
            self._user = None
        self._storage.clear()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> tuple[int, dict[str, Any]]:
        """
        Returns:
            ``(status_code, json_body)``; a non-JSON body reads as ``{}``

        Raises:
            httpx.HTTPError: Transport failure
        """
        response = self._http.request(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        return response.status_code, body if isinstance(body, dict) else {}

    # ------------------------------------------------------------------
    # Start-up
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Rehydrate a stored token, then ask whether setup is needed."""
        self._is_loading = True
        try:
            stored = self._storage.load()
            if stored is not None:
                self._rehydrate(stored.token)
            self.check_setup_status()
        finally:
            self._is_loading = False

    def _rehydrate(self, token: str) -> None:
        try:
            status, body = self._request(
                "GET", "/api/auth/verify",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            log.warning("Could not verify stored session: %s", e)
            return

        if status == 200 and isinstance(body.get("user"), dict):
            self._set_session(token, body["user"])
        else:
            log.info("Stored session rejected (%s); discarding it", body.get("code", status))
            self._clear_session()

    def check_setup_status(self) -> Optional[bool]:
        try:
            status, body = self._request("GET", "/api/auth/setup-status")
        except httpx.HTTPError as e:
            log.warning("Setup status check failed: %s", e)
            return None

        if status != 200:
            return None
        self._setup_required = bool(body.get("setup_required"))
        return self._setup_required

    # ------------------------------------------------------------------
    # Login / setup / logout
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResult:
        username = (username or "").strip()
        if not username or not password:
            return LoginResult(
                success=False,
                message="Please enter both username and password",
                code="VALIDATION_ERROR",
            )

        if self._lockout.locked and (self._lockout.username or "").casefold() == username.casefold():
            return LoginResult(
                success=False,
                message="Account is locked. Please wait for the lockout period to expire.",
                code="ACCOUNT_LOCKED",
                locked_until=self._lockout.locked_until,
                failed_attempts=self._lockout.failed_attempts,
            )

        try:
            status, body = self._request(
                "POST", "/api/auth/login",
                json={"username": username, "password": password},
            )
        except httpx.HTTPError as e:
            log.warning("Login request failed: %s", e)
            return LoginResult(success=False, message=NETWORK_ERROR_MESSAGE, code="NETWORK_ERROR")

        if status == 200:
            self._set_session(body["token"], body["user"])
            self._clear_lockout()
            return LoginResult(success=True, message=body.get("message"), user=body["user"])

        result = LoginResult(
            success=False,
            message=body.get("error") or "Login failed",
            code=body.get("code"),
            locked_until=_parse_timestamp(body.get("locked_until")),
            failed_attempts=body.get("failed_attempts"),
            remaining_attempts=body.get("remaining_attempts"),
            reset_time=_parse_timestamp(body.get("reset_time")),
            details=list(body.get("details") or []),
        )

        if result.code == "ACCOUNT_LOCKED" and result.locked_until is not None:
            self._enter_lockout(username, result.locked_until, result.failed_attempts)
        elif result.code == "INVALID_CREDENTIALS":
            self.check_lockout_status(username)

        return result

    def create_admin_account(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> SetupResult:
        """Validate locally, then create the first admin and sign in as it."""
        errors = validate_setup_form(username, email, password, confirm_password)
        if errors:
            return SetupResult(
                success=False,
                message="Please fix the highlighted fields",
                code="VALIDATION_ERROR",
                details=errors,
            )

        try:
            status, body = self._request("POST", "/api/auth/setup", json={
                "username": username,
                "email": email,
                "password": password,
                "confirmPassword": confirm_password,
            })
        except httpx.HTTPError as e:
            log.warning("Setup request failed: %s", e)
            return SetupResult(success=False, message=NETWORK_ERROR_MESSAGE, code="NETWORK_ERROR")

        if status == 201:
            self._set_session(body["token"], body["user"])
            self._setup_required = False
            return SetupResult(success=True, message=body.get("message"), user=body["user"])

        if body.get("code") == "SETUP_COMPLETED":
            self._setup_required = False
        return SetupResult(
            success=False,
            message=body.get("error") or "Setup failed",
            code=body.get("code"),
            details=list(body.get("details") or []),
        )

    def logout(self) -> Optional[threading.Thread]:
        """
        Drop the local session at once; tell the server in the background.

        Returns:
            The notifier thread, or None when there was no token to send
        """
        token = self._token
        self._clear_session()
        if not token:
            return None

        notifier = threading.Thread(target=self._notify_logout, args=(token,), daemon=True)
        notifier.start()
        return notifier

    def _notify_logout(self, token: str) -> None:
        try:
            self._request("POST", "/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
        except (httpx.HTTPError, RuntimeError) as e:
            # RuntimeError: client closed before the notification went out
            log.warning("Logout notification failed: %s", e)

    # ------------------------------------------------------------------
    # Lockout display
    # ------------------------------------------------------------------

    def check_lockout_status(self, username: str) -> Optional[dict[str, Any]]:
        """Ask the server about ``username`` and update the lockout display."""
        username = (username or "").strip()
        if not username:
            return None

        try:
            status, body = self._request("POST", "/api/auth/lockout-status", json={"username": username})
        except httpx.HTTPError as e:
            log.warning("Lockout status check failed: %s", e)
            return None

        if status != 200:
            return None

        locked_until = _parse_timestamp(body.get("locked_until"))
        if body.get("locked") and locked_until is not None:
            self._enter_lockout(username, locked_until, body.get("failed_attempts"))
        else:
            self._cancel_countdown()
            with self._lock:
                self._lockout = LockoutInfo(
                    username=username,
                    failed_attempts=body.get("failed_attempts"),
                )
        return body

    def _enter_lockout(
        self,
        username: str,
        locked_until: datetime,
        failed_attempts: Optional[int],
    ) -> None:
        self._cancel_countdown()
        countdown = LockoutCountdown(
            locked_until,
            on_tick=self._on_countdown_tick,
            on_expire=self._clear_lockout,
        )
        with self._lock:
            self._lockout = LockoutInfo(
                username=username,
                locked=True,
                locked_until=locked_until,
                failed_attempts=failed_attempts,
                time_remaining=countdown.time_remaining,
            )
            self._countdown = countdown
        countdown.start()

    def _on_countdown_tick(self, time_remaining: str) -> None:
        with self._lock:
            self._lockout.time_remaining = time_remaining

    def _clear_lockout(self) -> None:
        self._cancel_countdown()
        with self._lock:
            self._lockout = LockoutInfo()

    def _cancel_countdown(self) -> None:
        with self._lock:
            countdown, self._countdown = self._countdown, None
        if countdown is not None:
            countdown.cancel()

    # ------------------------------------------------------------------
    # Password helpers
    # ------------------------------------------------------------------

    @staticmethod
    def validate_password(password: str) -> PasswordCheck:
        return validate_password(password)

    def check_password_strength(self, password: str) -> Optional[dict[str, Any]]:
        try:
            status, body = self._request("POST", "/api/auth/password-strength", json={"password": password})
        except httpx.HTTPError as e:
            log.warning("Password strength check failed: %s", e)
            return None
        return body if status == 200 else None

    def close(self) -> None:
        self._cancel_countdown()
        self._http.close()
