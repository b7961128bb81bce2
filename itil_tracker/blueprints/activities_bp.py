"""
Activities Blueprint — activity lifecycle and evidence documents.

Endpoints:
    POST   /api/v1/subcategories/<sid>/activities          — create activity
    GET    /api/v1/activities/<aid>                         — activity + context + actions
    PUT    /api/v1/activities/<aid>                         — update activity
    DELETE /api/v1/activities/<aid>                         — delete activity
    POST   /api/v1/activities/<aid>/clone                   — clone activity
    POST   /api/v1/activities/<aid>/reopen                  — reopen closed activity
    POST   /api/v1/activities/<aid>/documents               — upload evidence (metadata)
    DELETE /api/v1/activities/<aid>/documents/<did>         — remove evidence

Upload body: { "original_name": "report.pdf", "size": 1234, "confirm": false }.
An upload that would create a new version of an existing file answers 200
with ``requires_confirmation: true`` and commits nothing until it is repeated
with ``confirm: true``.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from itil_tracker.blueprints import activity_path, current_access, get_store, today
from itil_tracker.core.exceptions import NotFoundError
from itil_tracker.middleware.permission_required import require_capability
from itil_tracker.models.auth import Capability
from itil_tracker.services import activity_service, tree
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers
from itil_tracker.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

activities_bp = Blueprint("activities", __name__, url_prefix="/api/v1")
register_service_error_handlers(activities_bp)


def _activity_payload(ctx, category_id, activity) -> dict:
    return {**activity.to_dict(), "actions": ctx.activity_actions(category_id, activity)}


@activities_bp.route("/subcategories/<subcategory_id>/activities", methods=["POST"])
@require_capability(Capability.VIEW_PRACTICES)
def create_activity(subcategory_id):
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = tree.find_subcategory(state.practices, subcategory_id)
        if not ctx.can_view_category(path.category_id):
            raise NotFoundError("Subcategory", subcategory_id)
        practices, activity = activity_service.save_activity(
            state.practices, ctx, path, data, today=today(),
        )
        store.commit(practices=practices)
    return jsonify(_activity_payload(ctx, path.category_id, activity)), 201


@activities_bp.route("/activities/<activity_id>", methods=["GET"])
@require_capability(Capability.VIEW_PRACTICES)
def get_activity(activity_id):
    ctx = current_access()
    practices = get_store().snapshot().practices
    path = activity_path(practices, ctx, activity_id)
    located = tree.locate_activity(practices, activity_id)
    return jsonify({
        **_activity_payload(ctx, path.category_id, located.activity),
        "practice_id": path.practice_id,
        "category_id": path.category_id,
        "subcategory_id": path.subcategory_id,
    }), 200


@activities_bp.route("/activities/<activity_id>", methods=["PUT"])
@require_capability(Capability.VIEW_PRACTICES)
def update_activity(activity_id):
    data = request.get_json(silent=True) or {}
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = activity_path(state.practices, ctx, activity_id)
        practices, activity = activity_service.save_activity(
            state.practices, ctx, path, data, today=today(),
        )
        store.commit(practices=practices)
    return jsonify(_activity_payload(ctx, path.category_id, activity)), 200


@activities_bp.route("/activities/<activity_id>", methods=["DELETE"])
@require_capability(Capability.VIEW_PRACTICES)
def delete_activity(activity_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = activity_path(state.practices, ctx, activity_id)
        store.commit(practices=activity_service.delete_activity(state.practices, ctx, path))
    return jsonify({"deleted": activity_id}), 200


@activities_bp.route("/activities/<activity_id>/clone", methods=["POST"])
@require_capability(Capability.VIEW_PRACTICES)
def clone_activity(activity_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = activity_path(state.practices, ctx, activity_id)
        practices, clone = activity_service.clone_activity(state.practices, ctx, path, today=today())
        store.commit(practices=practices)
    return jsonify(_activity_payload(ctx, path.category_id, clone)), 201


@activities_bp.route("/activities/<activity_id>/reopen", methods=["POST"])
@require_capability(Capability.VIEW_PRACTICES)
def reopen_activity(activity_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = activity_path(state.practices, ctx, activity_id)
        practices, activity = activity_service.reopen_activity(state.practices, ctx, path, today=today())
        store.commit(practices=practices)
    return jsonify(_activity_payload(ctx, path.category_id, activity)), 200


# ── Evidence documents ────────────────────────────────────────────────────────


@activities_bp.route("/activities/<activity_id>/documents", methods=["POST"])
@require_capability(Capability.VIEW_PRACTICES)
def upload_document(activity_id):
    data = request.get_json(silent=True) or {}
    original_name = (data.get("original_name") or "").strip()
    if not original_name:
        return api_error(E.VALIDATION_REQUIRED, "original_name is required")
    size = data.get("size")
    if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
        return api_error(E.VALIDATION_INVALID, "size must be an integer number of bytes")
    confirm = parse_bool(data.get("confirm", False), "confirm")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = activity_path(state.practices, ctx, activity_id)
        outcome = activity_service.upload_document(
            state.practices, ctx, path, original_name, size,
            confirm=confirm,
            sharepoint=state.sharepoint_config,
            max_bytes=current_app.config["MAX_UPLOAD_BYTES"],
        )
        if outcome.committed:
            store.commit(practices=outcome.practices)
    return jsonify(outcome.to_dict()), 201 if outcome.committed else 200


@activities_bp.route("/activities/<activity_id>/documents/<document_id>", methods=["DELETE"])
@require_capability(Capability.VIEW_PRACTICES)
def delete_document(activity_id, document_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        path = activity_path(state.practices, ctx, activity_id)
        practices, activity = activity_service.delete_document(state.practices, ctx, path, document_id)
        store.commit(practices=practices)
    return jsonify(_activity_payload(ctx, path.category_id, activity)), 200
