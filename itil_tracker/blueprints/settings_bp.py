"""
Settings Blueprint — LDAP and SharePoint integration records.

Endpoints:
    GET  /api/v1/settings/ldap               — LDAP record (bind password never returned)
    PUT  /api/v1/settings/ldap               — update LDAP record
    GET  /api/v1/settings/sharepoint         — SharePoint record
    PUT  /api/v1/settings/sharepoint         — update SharePoint record
    POST /api/v1/settings/<kind>/test        — simulated connection test
"""

import logging

from flask import Blueprint, jsonify, request

from itil_tracker.blueprints import current_access, get_store
from itil_tracker.middleware.permission_required import require_any_capability, require_capability
from itil_tracker.models.auth import Capability
from itil_tracker.services import settings_service
from itil_tracker.utils.errors import E, api_error, register_service_error_handlers

logger = logging.getLogger(__name__)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/v1/settings")
register_service_error_handlers(settings_bp)

_TEST_CAPABILITY = {
    "ldap": Capability.MANAGE_AUTH_SETTINGS,
    "sharepoint": Capability.MANAGE_STORAGE_SETTINGS,
}


# ── LDAP ──────────────────────────────────────────────────────────────────────


@settings_bp.route("/ldap", methods=["GET"])
@require_any_capability(Capability.VIEW_AUTH_SETTINGS, Capability.MANAGE_AUTH_SETTINGS)
def get_ldap():
    return jsonify(get_store().snapshot().ldap_config.to_dict()), 200


@settings_bp.route("/ldap", methods=["PUT"])
@require_capability(Capability.MANAGE_AUTH_SETTINGS)
def update_ldap():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "JSON object body required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        ldap = settings_service.update_ldap_config(state.ldap_config, ctx, data)
        store.commit(ldap_config=ldap)
    return jsonify(ldap.to_dict()), 200


# ── SharePoint ────────────────────────────────────────────────────────────────


@settings_bp.route("/sharepoint", methods=["GET"])
@require_any_capability(Capability.MANAGE_STORAGE_SETTINGS, Capability.VIEW_ALL_CATEGORIES)
def get_sharepoint():
    return jsonify(get_store().snapshot().sharepoint_config.to_dict()), 200


@settings_bp.route("/sharepoint", methods=["PUT"])
@require_capability(Capability.MANAGE_STORAGE_SETTINGS)
def update_sharepoint():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "JSON object body required")

    ctx = current_access()
    store = get_store()
    with store.transaction() as state:
        sharepoint = settings_service.update_sharepoint_config(state.sharepoint_config, ctx, data)
        store.commit(sharepoint_config=sharepoint)
    return jsonify(sharepoint.to_dict()), 200


# ── Connection test ───────────────────────────────────────────────────────────


@settings_bp.route("/<kind>/test", methods=["POST"])
def test_connection(kind):
    capability = _TEST_CAPABILITY.get(kind)
    if capability is None:
        return api_error(E.NOT_FOUND, f"Unknown integration: {kind}")
    ctx = current_access()
    if not ctx.can(capability):
        logger.warning("User %s denied connection test for %s", ctx.user_id, kind)
        return api_error(E.FORBIDDEN, "Permission denied", details={"required": capability.value})

    state = get_store().snapshot()
    return jsonify(settings_service.test_connection(kind, state.ldap_config, state.sharepoint_config)), 200
