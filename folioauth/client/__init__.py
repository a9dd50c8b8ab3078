"""
Client module - Session handling for API consumers of the admin area.
"""

from folioauth.client.countdown import LockoutCountdown, format_time_remaining
from folioauth.client.session_manager import (
    ClientSessionManager,
    LockoutInfo,
    LoginResult,
    SetupResult,
)
from folioauth.client.storage import StoredSession, TokenStorage

__all__ = [
    "ClientSessionManager",
    "LockoutCountdown",
    "LockoutInfo",
    "LoginResult",
    "SetupResult",
    "StoredSession",
    "TokenStorage",
    "format_time_remaining",
]
