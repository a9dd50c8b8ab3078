"""
FolioAuth Web API
=================
Flask JSON API for the portfolio admin area: first-run setup, login,
token verification, logout, lockout probing and password strength.
"""

from __future__ import annotations

import logging
import os
import secrets
from functools import wraps
from typing import Optional

from flask import Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from folioauth.core.config import AuthConfig
from folioauth.core.errors import AuthServiceError, NotFoundError, ServerError
from folioauth.core.gateway import AuthGateway
from folioauth.security.constants import AUTH_COOKIE_NAME, MIN_TOKEN_SECRET_LENGTH


log = logging.getLogger("folioauth.web")

_EXTENSION_KEY = "folioauth"


def _resolve_secret(secret_key: Optional[str]) -> str:
    secret = secret_key or os.environ.get("FOLIOAUTH_JWT_SECRET", "")
    if len(secret) >= MIN_TOKEN_SECRET_LENGTH:
        return secret
    if secret:
        log.warning(
            "FOLIOAUTH_JWT_SECRET is shorter than %d characters; ignoring it",
            MIN_TOKEN_SECRET_LENGTH,
        )
    log.warning("No JWT secret configured; sessions will not survive a restart")
    return secrets.token_hex(32)


def get_gateway() -> AuthGateway:
    return current_app.extensions[_EXTENSION_KEY]


def extract_token() -> Optional[str]:
    """Bearer header first, then the auth cookie."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(AUTH_COOKIE_NAME) or None


def require_auth(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        g.user = get_gateway().authenticate(extract_token())
        return f(*args, **kwargs)
    return wrapper


def _client_origin() -> str:
    return request.remote_addr or "unknown"


def _with_auth_cookie(response, token: str):
    response.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=get_gateway().tokens.ttl_seconds,
        httponly=True,
        secure=request.is_secure,
        samesite="Strict",
    )
    return response


def create_app(
    config: Optional[AuthConfig] = None,
    gateway: Optional[AuthGateway] = None,
    secret_key: Optional[str] = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Configuration (default: ``AuthConfig.get_instance()``)
        gateway: Pre-built gateway; built from ``config`` when omitted
        secret_key: JWT signing secret (default: ``FOLIOAUTH_JWT_SECRET``)
    """
    config = config or AuthConfig.get_instance()
    if gateway is None:
        gateway = AuthGateway.from_config(config, _resolve_secret(secret_key))

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 64 * 1024
    app.extensions[_EXTENSION_KEY] = gateway

    cors_origin = config.app.cors_origin

    # ============================================================
    # CORS
    # ============================================================

    def _cors(response):
        response.headers["Access-Control-Allow-Origin"] = cors_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Max-Age"] = "3600"
        if cors_origin != "*":
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
        return response

    app.after_request(_cors)

    @app.route("/api/<path:path>", methods=["OPTIONS"])
    def handle_options(path):
        return app.make_response(("", 204))

    # ============================================================
    # ERRORS
    # ============================================================

    @app.errorhandler(AuthServiceError)
    def handle_service_error(error: AuthServiceError):
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code == 404:
            return jsonify(NotFoundError().to_dict()), 404
        code = (error.name or "HTTP_ERROR").upper().replace(" ", "_")
        return jsonify({"error": error.description, "code": code}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(ServerError().to_dict()), 500

    # ============================================================
    # AUTHENTICATION ROUTES
    # ============================================================

    @app.route("/api/auth/setup-status", methods=["GET"])
    def setup_status():
        return jsonify(get_gateway().setup_status())

    @app.route("/api/auth/setup", methods=["POST"])
    def setup():
        body = get_gateway().setup(request.get_json(silent=True))
        return _with_auth_cookie(jsonify(body), body["token"]), 201

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        body = get_gateway().login(request.get_json(silent=True), origin=_client_origin())
        return _with_auth_cookie(jsonify(body), body["token"])

    @app.route("/api/auth/verify", methods=["GET"])
    @require_auth
    def verify():
        return jsonify({"user": g.user.to_public_dict()})

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        response = jsonify(get_gateway().logout(extract_token()))
        response.delete_cookie(AUTH_COOKIE_NAME, httponly=True, samesite="Strict")
        return response

    @app.route("/api/auth/lockout-status", methods=["POST"])
    def lockout_status():
        return jsonify(get_gateway().lockout_status(request.get_json(silent=True)))

    @app.route("/api/auth/password-strength", methods=["POST"])
    def password_strength():
        return jsonify(get_gateway().password_strength(request.get_json(silent=True)))

    return app
