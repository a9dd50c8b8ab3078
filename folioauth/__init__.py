"""
FolioAuth - Admin Authentication for a Portfolio Site
=====================================================

This package provides the credential, session and account-lockout
subsystem guarding a portfolio site's admin area.

Security Notice:
- No secrets are logged
- Fail-closed design pattern
- All paths are OS-aware
"""

from folioauth.core.config import AuthConfig
from folioauth.core.logging import get_secure_logger

__version__ = "0.1.0"
__author__ = "FolioAuth Team"

__all__ = ["AuthConfig", "get_secure_logger", "__version__"]
