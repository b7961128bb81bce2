"""
Auth Blueprint — login and current-user endpoints.

  POST /api/v1/auth/login   — username + password → access token
  GET  /api/v1/auth/me      — current user, role and capabilities
"""

import logging

from flask import Blueprint, jsonify, request

from itil_tracker.blueprints import current_access, get_store
from itil_tracker.models.auth import CAPABILITY_LABELS
from itil_tracker.services import auth_service
from itil_tracker.services.jwt_service import token_response
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")
register_service_error_handlers(auth_bp)


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with username + password, return an access token.

    Body: { "username": "...", "password": "..." }
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not username or not password:
        return api_error(E.VALIDATION_REQUIRED, "Username and password are required")

    state = get_store().snapshot()
    user = auth_service.authenticate(state.users, state.ldap_config, username, password)
    return jsonify({**token_response(user.id, user.role_id), "user": user.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
def me():
    ctx = current_access()
    capabilities = sorted(ctx.role.capabilities, key=lambda c: c.value)
    return jsonify({
        "user": ctx.user.to_dict(),
        "role": ctx.role.to_dict(),
        "capabilities": [
            {"code": c.value, "label": CAPABILITY_LABELS[c]} for c in capabilities
        ],
    }), 200
