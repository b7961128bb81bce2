"""
Settings Service — LDAP and SharePoint integration records.

Both records are plain configuration: nothing here opens a network
connection. ``test_connection`` only reports whether the integration is
enabled.

The LDAP bind password is stored Fernet-encrypted (see ``utils.crypto``);
API responses expose only ``has_bind_password``.

Usage:
    from itil_tracker.services import settings_service

    ldap = settings_service.update_ldap_config(current, ctx, {"enabled": True, ...})
"""

import logging
from dataclasses import fields, replace

from itil_tracker.core.exceptions import PermissionDenied, ValidationError
from itil_tracker.models.auth import Capability
from itil_tracker.models.integrations import LdapConfig, SharePointConfig
from itil_tracker.services.visibility import AccessContext
from itil_tracker.utils.crypto import encrypt_secret
from itil_tracker.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

LDAP_SCHEMES = ("ldap://", "ldaps://")


def _require(ctx: AccessContext, capability: Capability, action: str) -> None:
    if not ctx.can(capability):
        logger.warning("User %s lacks %s for %s", ctx.user_id, capability.value, action)
        raise PermissionDenied(ctx.user_id, action)


def _merge_strings(data: dict, names: set[str]) -> dict:
    changes = {}
    for name in names:
        if name in data:
            value = data[name]
            if not isinstance(value, str):
                raise ValidationError(f"{name} must be a string", details={name: "invalid"})
            changes[name] = value.strip()
    return changes


# ═══════════════════════════════════════════════════════════════
# LDAP
# ═══════════════════════════════════════════════════════════════

def validate_ldap_config(config: LdapConfig) -> None:
    if not config.enabled:
        return
    errors = {}
    if not config.server_url.lower().startswith(LDAP_SCHEMES):
        errors["server_url"] = "must start with ldap:// or ldaps://"
    if not config.base_dn:
        errors["base_dn"] = "required when LDAP is enabled"
    if errors:
        raise ValidationError("Invalid LDAP configuration", details=errors)


def update_ldap_config(current: LdapConfig, ctx: AccessContext, data: dict) -> LdapConfig:
    """Apply a partial update. A blank or missing ``bind_password`` keeps the stored one."""
    _require(ctx, Capability.MANAGE_AUTH_SETTINGS, "update_ldap_config")
    string_fields = {f.name for f in fields(LdapConfig)} - {"enabled", "bind_password"}
    changes = _merge_strings(data, string_fields)
    if "enabled" in data:
        changes["enabled"] = parse_bool(data["enabled"], "enabled")
    password = data.get("bind_password")
    if password:
        changes["bind_password"] = encrypt_secret(password)

    updated = replace(current, **changes)
    validate_ldap_config(updated)
    logger.info("LDAP configuration updated by %s (enabled=%s)", ctx.user_id, updated.enabled)
    return updated


# ═══════════════════════════════════════════════════════════════
# SharePoint
# ═══════════════════════════════════════════════════════════════

def validate_sharepoint_config(config: SharePointConfig) -> None:
    errors = {}
    length = config.max_file_name_length
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        errors["max_file_name_length"] = "must be a positive integer"
    if config.enabled and not config.site_url.lower().startswith("https://"):
        errors["site_url"] = "must be an https:// URL when SharePoint is enabled"
    if errors:
        raise ValidationError("Invalid SharePoint configuration", details=errors)


def update_sharepoint_config(current: SharePointConfig, ctx: AccessContext, data: dict) -> SharePointConfig:
    _require(ctx, Capability.MANAGE_STORAGE_SETTINGS, "update_sharepoint_config")
    changes = _merge_strings(data, {"site_url"})
    if "enabled" in data:
        changes["enabled"] = parse_bool(data["enabled"], "enabled")
    if "max_file_name_length" in data:
        raw = data["max_file_name_length"]
        try:
            changes["max_file_name_length"] = int(raw) if not isinstance(raw, bool) else raw
        except (TypeError, ValueError):
            raise ValidationError(
                "Invalid SharePoint configuration",
                details={"max_file_name_length": "must be a positive integer"},
            ) from None

    updated = replace(current, **changes)
    validate_sharepoint_config(updated)
    logger.info(
        "SharePoint configuration updated by %s (enabled=%s, max_len=%d)",
        ctx.user_id, updated.enabled, updated.max_file_name_length,
    )
    return updated


# ═══════════════════════════════════════════════════════════════
# Connection test (simulated)
# ═══════════════════════════════════════════════════════════════

def test_connection(kind: str, ldap: LdapConfig, sharepoint: SharePointConfig) -> dict:
    if kind == "ldap":
        enabled, target = ldap.enabled, ldap.server_url
    elif kind == "sharepoint":
        enabled, target = sharepoint.enabled, sharepoint.site_url
    else:
        raise ValidationError(f"Unknown integration: {kind!r}", details={"kind": ["ldap", "sharepoint"]})

    logger.info("Simulated %s connection test against %s (enabled=%s)", kind, target, enabled)
    if not enabled:
        return {"kind": kind, "success": False, "message": "La integración está deshabilitada."}
    return {"kind": kind, "success": True, "message": "Prueba de conexión simulada: éxito.", "target": target}
