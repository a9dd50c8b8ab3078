"""
Core module - Contains configuration, logging, errors and the auth gateway.
"""

from folioauth.core.config import AuthConfig
from folioauth.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["AuthConfig", "get_secure_logger", "SecureLogFilter"]
