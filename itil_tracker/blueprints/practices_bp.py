"""
Practices Blueprint — the visible practice tree and its structure.

Endpoints:
    GET    /api/v1/practices                                — visible tree with per-activity actions
    GET    /api/v1/practices/groups                         — configured practice groups
    POST   /api/v1/practices                                — create practice
    PUT    /api/v1/practices/<pid>                          — rename / regroup practice
    DELETE /api/v1/practices/<pid>                          — delete practice (cascade)
    POST   /api/v1/practices/<pid>/categories               — create category
    PUT    /api/v1/categories/<cid>                         — rename category
    DELETE /api/v1/categories/<cid>                         — delete category (cascade)
    POST   /api/v1/categories/<cid>/subcategories           — create subcategory
    PUT    /api/v1/subcategories/<sid>                      — set document folder
    DELETE /api/v1/subcategories/<sid>                      — delete subcategory (cascade)

Layer contract:
    - Tree changes are delegated to structure_service.
    - Every write computes from one snapshot and commits it under the store lock.
"""

import logging

from flask import Blueprint, jsonify, request

from itil_tracker.blueprints import current_access, get_store
from itil_tracker.models.auth import Capability
from itil_tracker.models.practice import ITIL_PRACTICE_GROUPS
from itil_tracker.middleware.permission_required import require_capability
from itil_tracker.services import structure_service, tree
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers

logger = logging.getLogger(__name__)

practices_bp = Blueprint("practices", __name__, url_prefix="/api/v1")
register_service_error_handlers(practices_bp)


def _practice_payload(practice, ctx) -> dict:
    data = practice.to_dict()
    for category, cat_data in zip(practice.categories, data["categories"]):
        cat_data["can_edit"] = ctx.can_edit_category(category.id)
        for subcategory, sub_data in zip(category.subcategories, cat_data["subcategories"]):
            for activity, act_data in zip(subcategory.activities, sub_data["activities"]):
                act_data["actions"] = ctx.activity_actions(category.id, activity)
    return data


def _commit_removal(store, state, practices) -> None:
    """Commit a pruned tree together with the users and requests it orphans."""
    removed = tree.all_category_ids(state.practices) - tree.all_category_ids(practices)
    users, requests = structure_service.drop_category_references(
        state.users, state.access_requests, removed,
    )
    store.commit(practices=practices, users=users, access_requests=requests)


# ── Read ──────────────────────────────────────────────────────────────────────


@practices_bp.route("/practices", methods=["GET"])
@require_capability(Capability.VIEW_PRACTICES)
def list_practices():
    """Return the practice tree pruned to what the caller may see.

    Query params:
        group (str, optional): only practices of this group.
    """
    ctx = current_access()
    visible = ctx.visible_practices(get_store().snapshot().practices)
    group = request.args.get("group")
    if group:
        visible = tuple(p for p in visible if p.group == group)
    return jsonify([_practice_payload(p, ctx) for p in visible]), 200


@practices_bp.route("/practices/groups", methods=["GET"])
def list_groups():
    return jsonify([
        {"name": g.name, "practices": list(g.practices)} for g in ITIL_PRACTICE_GROUPS
    ]), 200


# ── Practices ─────────────────────────────────────────────────────────────────


@practices_bp.route("/practices", methods=["POST"])
def create_practice():
    data = request.get_json(silent=True) or {}
    if not data.get("name") or not data.get("group"):
        return api_error(E.VALIDATION_REQUIRED, "name and group are required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        practices, practice = structure_service.create_practice(
            state.practices, ctx, name=data["name"], group=data["group"], practice_id=data.get("id"),
        )
        store.commit(practices=practices)
    return jsonify(practice.to_dict()), 201


@practices_bp.route("/practices/<practice_id>", methods=["PUT"])
def update_practice(practice_id):
    data = request.get_json(silent=True) or {}
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        practices, practice = structure_service.update_practice(
            state.practices, ctx, practice_id, name=data.get("name"), group=data.get("group"),
        )
        store.commit(practices=practices)
    return jsonify(practice.to_dict()), 200


@practices_bp.route("/practices/<practice_id>", methods=["DELETE"])
def delete_practice(practice_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        _commit_removal(store, state, structure_service.delete_practice(state.practices, ctx, practice_id))
    return jsonify({"deleted": practice_id}), 200


# ── Categories ────────────────────────────────────────────────────────────────


@practices_bp.route("/practices/<practice_id>/categories", methods=["POST"])
def create_category(practice_id):
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        practices, category = structure_service.create_category(
            state.practices, ctx, practice_id, name=data["name"],
        )
        store.commit(practices=practices)
    return jsonify(category.to_dict()), 201


@practices_bp.route("/categories/<category_id>", methods=["PUT"])
def rename_category(category_id):
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        practices, category = structure_service.rename_category(
            state.practices, ctx, category_id, name=data["name"],
        )
        store.commit(practices=practices)
    return jsonify(category.to_dict()), 200


@practices_bp.route("/categories/<category_id>", methods=["DELETE"])
def delete_category(category_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        _commit_removal(store, state, structure_service.delete_category(state.practices, ctx, category_id))
    return jsonify({"deleted": category_id}), 200


# ── Subcategories ─────────────────────────────────────────────────────────────


@practices_bp.route("/categories/<category_id>/subcategories", methods=["POST"])
def create_subcategory(category_id):
    data = request.get_json(silent=True) or {}
    if not data.get("name"):
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        practices, subcategory = structure_service.create_subcategory(
            state.practices, ctx, category_id,
            name=data["name"], sharepoint_folder_path=data.get("sharepoint_folder_path"),
        )
        store.commit(practices=practices)
    return jsonify(subcategory.to_dict()), 201


@practices_bp.route("/subcategories/<subcategory_id>", methods=["PUT"])
def update_subcategory(subcategory_id):
    data = request.get_json(silent=True) or {}
    if "sharepoint_folder_path" not in data:
        return api_error(E.VALIDATION_REQUIRED, "sharepoint_folder_path is required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        practices, subcategory = structure_service.update_subcategory_folder(
            state.practices, ctx, subcategory_id, data["sharepoint_folder_path"],
        )
        store.commit(practices=practices)
    return jsonify(subcategory.to_dict()), 200


@practices_bp.route("/subcategories/<subcategory_id>", methods=["DELETE"])
def delete_subcategory(subcategory_id):
    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        store.commit(practices=structure_service.delete_subcategory(state.practices, ctx, subcategory_id))
    return jsonify({"deleted": subcategory_id}), 200
