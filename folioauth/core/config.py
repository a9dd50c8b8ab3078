"""
Authentication Configuration Module
===================================

Provides immutable, environment-aware configuration for the admin
authentication service.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values or in the override channel
- OS-aware path handling
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from folioauth.security.constants import (
    LOCKOUT_DURATION_SECONDS,
    MAX_FAILED_ATTEMPTS,
    RATE_LIMIT_MAX_ATTEMPTS,
    RATE_LIMIT_WINDOW_SECONDS,
    TOKEN_TTL_SECONDS,
)


_APP_DIR_NAME: Final[str] = "FolioAuth"

# Keys never accepted from FOLIOAUTH_* overrides
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "credential", "salt",
})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might carry sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_data_dir() -> Path:
    """Get OS-appropriate default data directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / _APP_DIR_NAME


def _get_default_config_dir() -> Path:
    """Get OS-appropriate default config directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Preferences"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    return base / _APP_DIR_NAME


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / _APP_DIR_NAME / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / _APP_DIR_NAME
    else:
        state = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
        return state / _APP_DIR_NAME / "logs"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    data_dir: Path = field(default_factory=_get_default_data_dir)
    config_dir: Path = field(default_factory=_get_default_config_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        for field_name in ("data_dir", "config_dir", "log_dir"):
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ValueError(f"{field_name} must be an absolute path: {path}")

    @property
    def database_path(self) -> Path:
        """SQLite file holding the users table."""
        return self.data_dir / "folioauth.db"

    @property
    def session_file(self) -> Path:
        """Client-side token storage file."""
        return self.config_dir / "session.json"


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """
    Immutable security configuration.

    Lockout: ``max_failed_attempts`` consecutive failures lock the account
    for ``lockout_duration_seconds``.
    Rate limiting: at most ``rate_limit_max_attempts`` authentication
    requests per origin per ``rate_limit_window_seconds``.
    """

    # Account lockout
    max_failed_attempts: int = MAX_FAILED_ATTEMPTS
    lockout_duration_seconds: int = LOCKOUT_DURATION_SECONDS

    # Per-origin rate limiting
    rate_limit_window_seconds: int = RATE_LIMIT_WINDOW_SECONDS
    rate_limit_max_attempts: int = RATE_LIMIT_MAX_ATTEMPTS

    # Session tokens
    token_ttl_seconds: int = TOKEN_TTL_SECONDS

    # Argon2id cost (argon2-cffi RFC 9106 low-memory profile)
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536  # KiB
    argon2_parallelism: int = 4

    def __post_init__(self) -> None:
        if self.max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if self.lockout_duration_seconds <= 0:
            raise ValueError("lockout_duration_seconds must be positive")
        if self.rate_limit_window_seconds <= 0:
            raise ValueError("rate_limit_window_seconds must be positive")
        if self.rate_limit_max_attempts < 1:
            raise ValueError("rate_limit_max_attempts must be at least 1")
        if self.token_ttl_seconds <= 0:
            raise ValueError("token_ttl_seconds must be positive")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.max_file_size_bytes < 1024:
            raise ValueError("max_file_size_bytes must be at least 1024")
        if self.backup_count < 0:
            raise ValueError("backup_count cannot be negative")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable application configuration."""

    app_name: str = "folioauth"
    version: str = "0.1.0"
    cors_origin: str = "*"
    debug_mode: bool = False

    def __post_init__(self) -> None:
        if self.debug_mode:
            import warnings
            warnings.warn(
                "Debug mode is enabled. This should NEVER be used in production.",
                SecurityWarning,
                stacklevel=2,
            )


class AuthConfig:
    """
    Centralized, immutable configuration loader with environment overrides.

    Usage:
        config = AuthConfig.load()
        db_path = config.paths.database_path
        threshold = config.security.max_failed_attempts

    Environment variables use the ``FOLIOAUTH_`` prefix and double
    underscores for nested values, e.g.::

        FOLIOAUTH_LOGGING__LEVEL=DEBUG
        FOLIOAUTH_SECURITY__TOKEN_TTL_SECONDS=3600
        FOLIOAUTH_PATHS__DATA_DIR=/srv/folioauth
    """

    __slots__ = ("_paths", "_security", "_logging", "_app", "_frozen", "_config_hash")

    _instance: Optional[AuthConfig] = None

    _INT_SECURITY_KEYS: Final[tuple[str, ...]] = (
        "max_failed_attempts",
        "lockout_duration_seconds",
        "rate_limit_window_seconds",
        "rate_limit_max_attempts",
        "token_ttl_seconds",
        "argon2_time_cost",
        "argon2_memory_cost",
        "argon2_parallelism",
    )

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        security: Optional[SecurityConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_app", app or AppConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        config_str = f"{self._paths}|{self._security}|{self._logging}|{self._app}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def security(self) -> SecurityConfig:
        return self._security

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def app(self) -> AppConfig:
        return self._app

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "FOLIOAUTH") -> AuthConfig:
        """
        Load configuration with environment variable overrides.

        Args:
            env_prefix: Prefix for environment variables (default: FOLIOAUTH)

        Returns:
            Configured AuthConfig instance

        Raises:
            ValueError: If an override cannot be parsed or fails validation
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        for name in ("data_dir", "config_dir", "log_dir"):
            if f"paths.{name}" in env_overrides:
                paths_kwargs[name] = Path(env_overrides[f"paths.{name}"])

        security_kwargs: dict[str, Any] = {}
        for name in cls._INT_SECURITY_KEYS:
            if f"security.{name}" in env_overrides:
                security_kwargs[name] = int(env_overrides[f"security.{name}"])

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        for name in ("enable_console", "enable_file", "enable_json"):
            if f"logging.{name}" in env_overrides:
                logging_kwargs[name] = env_overrides[f"logging.{name}"].lower() == "true"
        for name in ("max_file_size_bytes", "backup_count"):
            if f"logging.{name}" in env_overrides:
                logging_kwargs[name] = int(env_overrides[f"logging.{name}"])

        # debug_mode cannot be enabled from the environment
        app_kwargs: dict[str, Any] = {}
        if "app.cors_origin" in env_overrides:
            app_kwargs["cors_origin"] = env_overrides["app.cors_origin"]

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            security=SecurityConfig(**security_kwargs) if security_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
            app=AppConfig(**app_kwargs) if app_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # FOLIOAUTH_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")
                if _is_sensitive_key(config_key):
                    continue
                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> AuthConfig:
        """Get or create the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create all required directories with owner-only permissions."""
        import stat

        for directory in (self._paths.data_dir, self._paths.config_dir, self._paths.log_dir):
            directory.mkdir(parents=True, exist_ok=True)
            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return f"AuthConfig(hash={self._config_hash}, app={self._app.app_name})"

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("AuthConfig is immutable after initialization")
        super().__setattr__(name, value)


class SecurityWarning(UserWarning):
    """Warning for security-related configuration issues."""
    pass
