"""
Role Service — role definition and management.

Features:
  - Create roles from a set of named capabilities
  - Default role protection (ADMIN / USER cannot be modified or deleted)
  - In-use protection (a role assigned to any user cannot be deleted)
"""

import logging
import uuid
from dataclasses import replace

from itil_tracker.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from itil_tracker.models.auth import BASELINE_CAPABILITIES, Capability, Role, User, parse_capabilities
from itil_tracker.services.visibility import AccessContext

logger = logging.getLogger(__name__)

DEFAULT_ROLE_DELETE_MESSAGE = "No se puede eliminar un rol predeterminado."
DEFAULT_ROLE_UPDATE_MESSAGE = "No se puede modificar un rol predeterminado."
ROLE_IN_USE_MESSAGE = "No se puede eliminar un rol que está asignado a uno o más usuarios."


def _require_manage(ctx: AccessContext, action: str) -> None:
    if not ctx.can(Capability.MANAGE_ROLES):
        logger.warning("User %s may not %s", ctx.user_id, action)
        raise PermissionDenied(ctx.user_id, action)


def _capabilities(values) -> frozenset[Capability]:
    try:
        return parse_capabilities(values)
    except ValueError as e:
        raise ValidationError(str(e), details={"capabilities": [c.value for c in Capability]}) from None


def _check_name(roles: tuple[Role, ...], name, exclude_id: str | None = None) -> str:
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Role name is required", details={"name": "required"})
    for role in roles:
        if role.id != exclude_id and role.name.lower() == name.lower():
            raise ConflictError(f"Role '{name}' already exists", "Role", role.id)
    return name


# ═══════════════════════════════════════════════════════════════
# Role CRUD
# ═══════════════════════════════════════════════════════════════

def get_role(roles: tuple[Role, ...], role_id: str) -> Role:
    for role in roles:
        if role.id == role_id:
            return role
    raise NotFoundError("Role", role_id)


def create_role(
    roles: tuple[Role, ...],
    ctx: AccessContext,
    *,
    name: str,
    description: str = "",
    capabilities=None,
) -> tuple[tuple[Role, ...], Role]:
    """Create a role. Without explicit capabilities it gets the baseline set."""
    _require_manage(ctx, "create_role")
    role = Role(
        id=f"role-{uuid.uuid4().hex[:8]}",
        name=_check_name(roles, name),
        description=(description or "").strip(),
        is_default=False,
        capabilities=BASELINE_CAPABILITIES if capabilities is None else _capabilities(capabilities),
    )
    logger.info("Role %s (%s) created by %s", role.id, role.name, ctx.user_id)
    return roles + (role,), role


def update_role(
    roles: tuple[Role, ...],
    ctx: AccessContext,
    role_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    capabilities=None,
) -> tuple[tuple[Role, ...], Role]:
    _require_manage(ctx, "update_role")
    current = get_role(roles, role_id)
    if current.is_default:
        raise ConflictError(DEFAULT_ROLE_UPDATE_MESSAGE, "Role", role_id)

    changes = {}
    if name is not None:
        changes["name"] = _check_name(roles, name, exclude_id=role_id)
    if description is not None:
        changes["description"] = description.strip()
    if capabilities is not None:
        changes["capabilities"] = _capabilities(capabilities)

    role = replace(current, **changes)
    logger.info("Role %s updated by %s", role_id, ctx.user_id)
    return tuple(role if r.id == role_id else r for r in roles), role


def delete_role(
    roles: tuple[Role, ...],
    users: tuple[User, ...],
    ctx: AccessContext,
    role_id: str,
) -> tuple[Role, ...]:
    _require_manage(ctx, "delete_role")
    role = get_role(roles, role_id)
    if role.is_default:
        raise ConflictError(DEFAULT_ROLE_DELETE_MESSAGE, "Role", role_id)
    assigned = sum(1 for u in users if u.role_id == role_id)
    if assigned:
        logger.warning("Role %s still assigned to %d user(s)", role_id, assigned)
        raise ConflictError(ROLE_IN_USE_MESSAGE, "Role", role_id)
    logger.info("Role %s deleted by %s", role_id, ctx.user_id)
    return tuple(r for r in roles if r.id != role_id)
