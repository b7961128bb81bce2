"""
JWT Auth Middleware — parses the Bearer token and sets g.current_user_id.

Every /api/v1 route except login and health requires a valid access token.
The user must still exist in the current store snapshot; deleting a user
invalidates their outstanding tokens.
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

from itil_tracker.store import EXTENSION_KEY
from itil_tracker.utils.errors import E, api_error
from itil_tracker.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user_id = None

        path = request.path
        if not path.startswith("/api/v1/") or request.method == "OPTIONS":
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHENTICATED, "Authentication required")

        token = auth_header[7:]  # Strip "Bearer "
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHENTICATED, "Token expired")
        except pyjwt.InvalidTokenError:
            logger.warning("Invalid token on %s %s", request.method, path)
            return api_error(E.UNAUTHENTICATED, "Invalid token")

        user_id = payload.get("sub")
        state = current_app.extensions[EXTENSION_KEY].snapshot()
        if not any(u.id == user_id for u in state.users):
            logger.warning("Token for unknown user %s", user_id)
            return api_error(E.UNAUTHENTICATED, "Invalid token")

        g.current_user_id = user_id
        return None
