# sitegrade/__init__.py
"""
App factory.

Configuration comes from environment variables, overridable per call:
    - SQLALCHEMY_DATABASE_URI   required in production, SQLite file otherwise
    - SECRET_KEY                required in production
    - CORS_ORIGINS              comma-separated origins; https:// means production
    - SITEGRADE_PROBE_TIMEOUT   seconds the probe fan-out may take (default 10)
    - SITEGRADE_USER_AGENT      User-Agent sent to scanned sites
    - SITEGRADE_GUEST_SCAN_LIMIT  scans per client IP per 24h (default 5)
    - SITEGRADE_TOKEN_TTL_DAYS  lifetime of result access tokens (default 7)
    - SITEGRADE_RUN_INLINE      run scans in the request thread (tests)

    app = create_app({"SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
"""

from __future__ import annotations
from flask_cors import CORS
import os
import logging
import traceback
from flask import Flask, jsonify
from .extensions import init_extensions
from . import models  # noqa: F401  registers tables for create_all
from .scans import scans_bp
from .scans.ratelimit import InMemoryRateLimiter, DEFAULT_GUEST_SCAN_LIMIT
import re

error_logger = logging.getLogger("sitegrade.errors")

DEV_DATABASE_URI = "sqlite:///sitegrade.db"


def _is_production() -> bool:
    """Detect production by checking CORS_ORIGINS for https."""
    return os.getenv("CORS_ORIGINS", "").startswith("https://")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__)
    config = config or {}

    is_prod = _is_production()

    # ── Logging ──────────────────────────────────────────────────────
    if is_prod:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        app.logger.setLevel(logging.INFO)
    else:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
        app.logger.setLevel(logging.DEBUG)

    # Werkzeug logs every request
    logging.getLogger("werkzeug").setLevel(logging.INFO)
    # Quieten noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    # ─────────────────────────────────────────────────────────────────

    # ── CORS ────────────────────────────────────────────────────────
    cors_env = os.getenv("CORS_ORIGINS")
    if cors_env:
        cors_origins = [o.strip() for o in cors_env.split(",") if o.strip()]
    else:
        cors_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            re.compile(r"http://192\.168\.\d+\.\d+:3000"),
        ]

    CORS(app, resources={
        r"/*": {
            "origins": cors_origins,
            "allow_headers": ["Content-Type"],
            "methods": ["GET", "POST", "OPTIONS"],
        }
    })

    # ── Secret Key ───────────────────────────────────────────────────
    secret_key = config.get("SECRET_KEY") or os.getenv("SECRET_KEY")
    if is_prod and not secret_key:
        raise RuntimeError(
            "SECRET_KEY environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
        )
    app.config["SECRET_KEY"] = secret_key or "dev-secret-key-change-me"

    # ── Database ─────────────────────────────────────────────────────
    database_uri = config.get("SQLALCHEMY_DATABASE_URI") or os.getenv("SQLALCHEMY_DATABASE_URI")
    if not database_uri:
        if is_prod:
            raise RuntimeError(
                "SQLALCHEMY_DATABASE_URI environment variable is not set. "
                "Set it to a database connection string, e.g.: "
                "postgresql://sitegrade:PASSWORD@db:5432/sitegrade"
            )
        database_uri = DEV_DATABASE_URI
    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # ── Scanner ──────────────────────────────────────────────────────
    app.config["SITEGRADE_GUEST_SCAN_LIMIT"] = int(
        os.getenv("SITEGRADE_GUEST_SCAN_LIMIT", DEFAULT_GUEST_SCAN_LIMIT)
    )
    app.config["SITEGRADE_TOKEN_TTL_DAYS"] = int(os.getenv("SITEGRADE_TOKEN_TTL_DAYS", 7))
    app.config["SITEGRADE_RUN_INLINE"] = _env_flag("SITEGRADE_RUN_INLINE")

    app.config.update(config)

    # ── Extensions ───────────────────────────────────────────────────
    init_extensions(app)
    app.extensions["scan_rate_limiter"] = config.get("SCAN_RATE_LIMITER") or InMemoryRateLimiter(
        limit=app.config["SITEGRADE_GUEST_SCAN_LIMIT"],
    )

    # ── Blueprints ───────────────────────────────────────────────────
    app.register_blueprint(scans_bp)

    # ── Global Error Handlers ────────────────────────────────────────
    # Return clean JSON for all errors, never expose tracebacks to users.

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({
            "error": "Bad request",
            "message": str(e.description) if hasattr(e, "description") else "The request was malformed or invalid.",
        }), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "error": "Not found",
            "message": "The requested resource was not found.",
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({
            "error": "Method not allowed",
            "message": "This HTTP method is not allowed for this endpoint.",
        }), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
        }), 429

    @app.errorhandler(500)
    def internal_error(e):
        error_logger.error(
            "500 Internal Server Error:\n%s", traceback.format_exc()
        )
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }), 500

    @app.errorhandler(Exception)
    def catch_all(e):
        """Catch-all for any unhandled exception, never leak tracebacks."""
        error_logger.error(
            "Unhandled exception: %s\n%s", str(e), traceback.format_exc()
        )
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }), 500

    # ─────────────────────────────────────────────────────────────────

    # Health check
    @app.get("/health")
    def health():
        return jsonify(status="up and running"), 200

    return app
