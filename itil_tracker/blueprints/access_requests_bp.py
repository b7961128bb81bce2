"""
Access Requests Blueprint — category access requests.

Endpoints:
    GET  /api/v1/access-requests                    — own requests (all for user managers)
    POST /api/v1/access-requests                    — request access to a category
    POST /api/v1/access-requests/<rid>/approve      — approve (grants view access)
    POST /api/v1/access-requests/<rid>/reject       — reject
"""

import logging

from flask import Blueprint, jsonify, request

from itil_tracker.blueprints import current_access, get_store
from itil_tracker.services import access_request_service, tree
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers

logger = logging.getLogger(__name__)

access_requests_bp = Blueprint("access_requests", __name__, url_prefix="/api/v1/access-requests")
register_service_error_handlers(access_requests_bp)


def _names(state) -> tuple[dict, dict]:
    users = {u.id: u.full_name for u in state.users}
    categories = {c.id: c.name for p in state.practices for c in p.categories}
    return users, categories


def _payload(req, users: dict, categories: dict) -> dict:
    return {
        **req.to_dict(),
        "user_name": users.get(req.user_id, "Desconocido"),
        "category_name": categories.get(req.category_id, "Desconocido"),
    }


@access_requests_bp.route("", methods=["GET"])
def list_requests():
    ctx = current_access()
    state = get_store().snapshot()
    users, categories = _names(state)
    visible = access_request_service.visible_requests(state.access_requests, ctx)
    return jsonify([_payload(r, users, categories) for r in visible]), 200


@access_requests_bp.route("", methods=["POST"])
def create_request():
    data = request.get_json(silent=True) or {}
    category_id = data.get("category_id")
    if not category_id:
        return api_error(E.VALIDATION_REQUIRED, "category_id is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        requests, req = access_request_service.create_request(
            state.access_requests, ctx, category_id,
            category_ids=tree.all_category_ids(state.practices),
        )
        state = store.commit(access_requests=requests)
    users, categories = _names(state)
    return jsonify(_payload(req, users, categories)), 201


@access_requests_bp.route("/<request_id>/approve", methods=["POST"])
def approve_request(request_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        requests, users, req = access_request_service.approve_request(
            state.access_requests, state.users, ctx, request_id,
        )
        state = store.commit(access_requests=requests, users=users)
    user_names, categories = _names(state)
    return jsonify(_payload(req, user_names, categories)), 200


@access_requests_bp.route("/<request_id>/reject", methods=["POST"])
def reject_request(request_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        requests, req = access_request_service.reject_request(state.access_requests, ctx, request_id)
        state = store.commit(access_requests=requests)
    users, categories = _names(state)
    return jsonify(_payload(req, users, categories)), 200
