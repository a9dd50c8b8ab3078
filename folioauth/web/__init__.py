"""
Web module - Flask application factory for the admin auth API.
"""

from folioauth.web.app import create_app, extract_token, get_gateway, require_auth

__all__ = ["create_app", "extract_token", "get_gateway", "require_auth"]
