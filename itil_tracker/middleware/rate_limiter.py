"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in itil_tracker/__init__.py with no default limits; this module
applies granular limits per route category.

Usage:
    from itil_tracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth endpoints:   LOGIN_RATE_LIMIT (brute-force guard on login)
        - Admin endpoints:  60/minute
        - Tracker endpoints: 200/minute

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(app.config.get("LOGIN_RATE_LIMIT", "10 per minute"))(bp)

    for bp_name in ("users", "roles", "settings", "access_requests"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in ("practices", "activities", "dashboard"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    app.logger.info(
        "Rate limiter configured — login: %s, admin: %s, tracker: %s",
        app.config.get("LOGIN_RATE_LIMIT"), WRITE_LIMIT, READ_LIMIT,
    )
