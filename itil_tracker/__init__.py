"""
ITIL Governance Tracker
Flask Application Factory.

Usage:
    from itil_tracker import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os
from datetime import date

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from itil_tracker.config import config
from itil_tracker.middleware.jwt_auth import init_jwt_middleware
from itil_tracker.middleware.logging_config import configure_logging
from itil_tracker.middleware.rate_limiter import init_rate_limits
from itil_tracker.middleware.timing import init_request_timing
from itil_tracker.seed import seed_demo_state
from itil_tracker.store import EXTENSION_KEY, TrackerState, TrackerStore

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def _initial_state(app) -> TrackerState:
    max_len = app.config["DEFAULT_MAX_FILE_NAME_LENGTH"]
    if not app.config.get("SEED_DEMO_DATA", True):
        return TrackerState()
    with app.app_context():
        return seed_demo_state(date.today(), seed=app.config["DEMO_SEED"], max_file_name_length=max_len)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── State store (composition root) ───────────────────────────────────
    app.extensions[EXTENSION_KEY] = TrackerStore(_initial_state(app))

    # ── Request timing + JWT auth ────────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from itil_tracker.blueprints.access_requests_bp import access_requests_bp
    from itil_tracker.blueprints.activities_bp import activities_bp
    from itil_tracker.blueprints.auth_bp import auth_bp
    from itil_tracker.blueprints.dashboard_bp import dashboard_bp
    from itil_tracker.blueprints.practices_bp import practices_bp
    from itil_tracker.blueprints.roles_bp import roles_bp
    from itil_tracker.blueprints.settings_bp import settings_bp
    from itil_tracker.blueprints.users_bp import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(practices_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(roles_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(access_requests_bp)

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/api/v1/health")
    def health():
        store = app.extensions[EXTENSION_KEY]
        return {"status": "ok", "app": "ITIL Governance Tracker", "state_version": store.version}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
