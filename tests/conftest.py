"""Shared pytest fixtures.

Every test gets its own SQLite file under ``tmp_path`` and an Argon2
hasher at the minimum accepted cost so the suite stays fast.
"""

import pytest

from folioauth.core.auth.argon2_auth import Argon2Hasher
from folioauth.core.auth.credential_store import CredentialStore
from folioauth.core.auth.lockout import LockoutStateMachine
from folioauth.core.auth.session_control import TokenService
from folioauth.core.config import AuthConfig, PathConfig
from folioauth.core.gateway import AuthGateway
from folioauth.security.rate_limiter import RateLimiter
from folioauth.web import create_app


TEST_SECRET = "test-signing-secret-" + "x" * 32

# 20 chars, 2 specials, 4 digits
STRONG_PASSWORD = "Portfolio!Admin#2024"


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    yield
    AuthConfig.reset_instance()


@pytest.fixture
def hasher():
    return Argon2Hasher(memory_cost=19456, time_cost=2, parallelism=1)


@pytest.fixture
def store(tmp_path, hasher):
    return CredentialStore(tmp_path / "auth.db", hasher=hasher)


@pytest.fixture
def admin(store):
    return store.create("admin", "admin@example.com", STRONG_PASSWORD)


@pytest.fixture
def lockout(store):
    return LockoutStateMachine(store)


@pytest.fixture
def tokens():
    return TokenService(TEST_SECRET)


@pytest.fixture
def limiter():
    return RateLimiter()


@pytest.fixture
def gateway(store, lockout, tokens, limiter):
    return AuthGateway(store, lockout, tokens, limiter)


@pytest.fixture
def config(tmp_path):
    return AuthConfig(
        paths=PathConfig(
            data_dir=tmp_path / "data",
            config_dir=tmp_path / "config",
            log_dir=tmp_path / "logs",
        )
    )


@pytest.fixture
def app(config, gateway):
    app = create_app(config, gateway=gateway)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
