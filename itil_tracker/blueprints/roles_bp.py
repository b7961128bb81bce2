"""
Roles Blueprint — role administration.

Endpoints:
    GET    /api/v1/roles                 — list roles
    GET    /api/v1/roles/capabilities    — capability catalogue with labels
    POST   /api/v1/roles                 — create role
    PUT    /api/v1/roles/<rid>           — update role (not default roles)
    DELETE /api/v1/roles/<rid>           — delete role (not default, not in use)
"""

import logging

from flask import Blueprint, jsonify, request

from itil_tracker.blueprints import current_access, get_store
from itil_tracker.middleware.permission_required import require_any_capability, require_capability
from itil_tracker.models.auth import CAPABILITY_LABELS, Capability
from itil_tracker.services import role_service
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers

logger = logging.getLogger(__name__)

roles_bp = Blueprint("roles", __name__, url_prefix="/api/v1/roles")
register_service_error_handlers(roles_bp)


@roles_bp.route("", methods=["GET"])
@require_any_capability(Capability.VIEW_ROLE_MANAGEMENT, Capability.MANAGE_ROLES, Capability.MANAGE_USERS)
def list_roles():
    state = get_store().snapshot()
    result = []
    for role in state.roles:
        data = role.to_dict()
        data["user_count"] = sum(1 for u in state.users if u.role_id == role.id)
        result.append(data)
    return jsonify(result), 200


@roles_bp.route("/capabilities", methods=["GET"])
def list_capabilities():
    return jsonify([{"code": c.value, "label": CAPABILITY_LABELS[c]} for c in Capability]), 200


@roles_bp.route("", methods=["POST"])
@require_capability(Capability.MANAGE_ROLES)
def create_role():
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        roles, role = role_service.create_role(
            state.roles, ctx,
            name=data["name"],
            description=data.get("description", ""),
            capabilities=data.get("capabilities"),
        )
        store.commit(roles=roles)
    return jsonify(role.to_dict()), 201


@roles_bp.route("/<role_id>", methods=["PUT"])
@require_capability(Capability.MANAGE_ROLES)
def update_role(role_id):
    data = request.get_json(silent=True) or {}
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        roles, role = role_service.update_role(
            state.roles, ctx, role_id,
            name=data.get("name"),
            description=data.get("description"),
            capabilities=data.get("capabilities"),
        )
        store.commit(roles=roles)
    return jsonify(role.to_dict()), 200


@roles_bp.route("/<role_id>", methods=["DELETE"])
@require_capability(Capability.MANAGE_ROLES)
def delete_role(role_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        store.commit(roles=role_service.delete_role(state.roles, state.users, ctx, role_id))
    return jsonify({"deleted": role_id}), 200
