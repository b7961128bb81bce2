"""
Users Blueprint — user administration.

Endpoints:
    GET    /api/v1/users                                — list users
    GET    /api/v1/users/<uid>                          — one user
    POST   /api/v1/users                                — create user
    PUT    /api/v1/users/<uid>                          — update user
    DELETE /api/v1/users/<uid>                          — delete user
    PUT    /api/v1/users/<uid>/permissions/<cid>        — set category access (none/view/edit)
"""

import logging

from flask import Blueprint, jsonify, request

from itil_tracker.blueprints import current_access, get_store
from itil_tracker.middleware.permission_required import require_any_capability, require_capability
from itil_tracker.models.auth import Capability
from itil_tracker.services import tree, user_service
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")
register_service_error_handlers(users_bp)

_UPDATABLE = ("username", "full_name", "email", "role_id", "auth_type",
              "password", "password_confirmation", "permissions")


@users_bp.route("", methods=["GET"])
@require_any_capability(Capability.VIEW_USERS, Capability.MANAGE_USERS)
def list_users():
    users = get_store().snapshot().users
    return jsonify([u.to_dict() for u in users]), 200


@users_bp.route("/<user_id>", methods=["GET"])
@require_any_capability(Capability.VIEW_USERS, Capability.MANAGE_USERS)
def get_user(user_id):
    return jsonify(user_service.get_user(get_store().snapshot().users, user_id).to_dict()), 200


@users_bp.route("", methods=["POST"])
@require_capability(Capability.MANAGE_USERS)
def create_user():
    data = request.get_json(silent=True) or {}
    missing = [f for f in ("username", "email", "role_id") if not data.get(f)]
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"Missing fields: {', '.join(missing)}")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        users, user = user_service.create_user(
            state.users, state.roles, ctx,
            username=data["username"],
            full_name=data.get("full_name", ""),
            email=data["email"],
            role_id=data["role_id"],
            auth_type=data.get("auth_type", "Local"),
            password=data.get("password"),
            password_confirmation=data.get("password_confirmation"),
            permissions=data.get("permissions") or (),
            category_ids=tree.all_category_ids(state.practices),
        )
        store.commit(users=users)
    return jsonify(user.to_dict()), 201


@users_bp.route("/<user_id>", methods=["PUT"])
@require_capability(Capability.MANAGE_USERS)
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    fields = {k: data[k] for k in _UPDATABLE if k in data}

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        users, user = user_service.update_user(
            state.users, state.roles, ctx, user_id,
            category_ids=tree.all_category_ids(state.practices),
            **fields,
        )
        store.commit(users=users)
    return jsonify(user.to_dict()), 200


@users_bp.route("/<user_id>", methods=["DELETE"])
@require_capability(Capability.MANAGE_USERS)
def delete_user(user_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        store.commit(users=user_service.delete_user(state.users, ctx, user_id))
    return jsonify({"deleted": user_id}), 200


@users_bp.route("/<user_id>/permissions/<category_id>", methods=["PUT"])
@require_capability(Capability.MANAGE_USERS)
def set_category_access(user_id, category_id):
    """Body: { "level": "none" | "view" | "edit" }"""
    data = request.get_json(silent=True) or {}
    level = data.get("level")
    if level not in user_service.ACCESS_LEVELS:
        return api_error(
            E.VALIDATION_INVALID, "level must be one of none, view, edit",
            details={"level": list(user_service.ACCESS_LEVELS)},
        )

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        users, user = user_service.set_category_access(
            state.users, ctx, user_id, category_id, level,
            category_ids=tree.all_category_ids(state.practices),
        )
        store.commit(users=users)
    return jsonify(user.to_dict()), 200
