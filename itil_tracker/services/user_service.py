"""
User Service — CRUD operations and per-category access grants.

Users live in the store as a tuple of frozen ``User`` records; every function
returns the new tuple together with the affected user.
"""

import logging
import uuid
from dataclasses import replace

from email_validator import EmailNotValidError, validate_email

from itil_tracker.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from itil_tracker.models.auth import AuthType, Capability, Permission, Role, User
from itil_tracker.services.visibility import AccessContext
from itil_tracker.utils.crypto import hash_password
from itil_tracker.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

ACCESS_LEVELS = ("none", "view", "edit")


def _require(ctx: AccessContext, capability: Capability, action: str) -> None:
    if not ctx.can(capability):
        logger.warning("User %s lacks %s for %s", ctx.user_id, capability.value, action)
        raise PermissionDenied(ctx.user_id, action)


# ═══════════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════════
def get_user(users: tuple[User, ...], user_id: str) -> User:
    for user in users:
        if user.id == user_id:
            return user
    raise NotFoundError("User", user_id)


def find_by_username(users: tuple[User, ...], username: str) -> User | None:
    """Case-insensitive username lookup."""
    wanted = (username or "").strip().lower()
    for user in users:
        if user.username.lower() == wanted:
            return user
    return None


# ═══════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════
def _normalize_email(email: str) -> str:
    try:
        return validate_email(email or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"}) from None


def _parse_auth_type(value) -> AuthType:
    if isinstance(value, AuthType):
        return value
    for member in AuthType:
        if value in (member.value, member.name, member.name.lower()):
            return member
    raise ValidationError(
        f"Unknown auth type: {value!r}",
        details={"auth_type": [m.value for m in AuthType]},
    )


def _check_role(roles: tuple[Role, ...], role_id: str) -> None:
    if not any(r.id == role_id for r in roles):
        raise ValidationError(f"Role {role_id} does not exist", details={"role_id": "unknown"})


def _check_username(users: tuple[User, ...], username: str, exclude_id: str | None = None) -> str:
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required", details={"username": "required"})
    clash = find_by_username(users, username)
    if clash is not None and clash.id != exclude_id:
        raise ConflictError(f"Username '{username}' is already taken", "User", clash.id)
    return username


def _check_password(password, confirmation) -> None:
    if confirmation is not None and password != confirmation:
        raise ValidationError("Las contraseñas no coinciden.", details={"password_confirmation": "mismatch"})


def _parse_permissions(raw, category_ids: set[str] | None) -> tuple[Permission, ...]:
    """Build permissions from ``[{"category_id": ..., "can_edit": ...}]``; last entry per category wins."""
    by_category: dict[str, Permission] = {}
    for item in raw or ():
        if isinstance(item, Permission):
            perm = item
        else:
            category_id = item.get("category_id") if isinstance(item, dict) else None
            if not category_id:
                raise ValidationError("Permission entry needs a category_id", details={"permissions": "invalid"})
            can_edit = parse_bool(item.get("can_edit", False), "can_edit")
            perm = Permission(category_id=category_id, can_edit=can_edit)
        if category_ids is not None and perm.category_id not in category_ids:
            raise NotFoundError("Category", perm.category_id)
        by_category[perm.category_id] = perm
    return tuple(by_category.values())


# ═══════════════════════════════════════════════════════════════
# User CRUD
# ═══════════════════════════════════════════════════════════════
def create_user(
    users: tuple[User, ...],
    roles: tuple[Role, ...],
    ctx: AccessContext,
    *,
    username: str,
    full_name: str,
    email: str,
    role_id: str,
    auth_type=AuthType.LOCAL,
    password: str | None = None,
    password_confirmation: str | None = None,
    permissions=(),
    category_ids: set[str] | None = None,
) -> tuple[tuple[User, ...], User]:
    """Create a user. LOCAL users need a password; DIRECTORY users never store one."""
    _require(ctx, Capability.MANAGE_USERS, "create_user")
    username = _check_username(users, username)
    auth_type = _parse_auth_type(auth_type)
    email = _normalize_email(email)
    _check_role(roles, role_id)

    password_hash = None
    if auth_type == AuthType.LOCAL:
        if not password:
            raise ValidationError(
                "La contraseña es obligatoria para nuevos usuarios locales.",
                details={"password": "required"},
            )
        _check_password(password, password_confirmation)
        password_hash = hash_password(password)

    user = User(
        id=f"u-{uuid.uuid4().hex[:8]}",
        username=username,
        full_name=(full_name or "").strip() or username,
        email=email,
        role_id=role_id,
        auth_type=auth_type,
        permissions=_parse_permissions(permissions, category_ids),
        password_hash=password_hash,
    )
    logger.info("User %s (%s) created by %s", user.id, username, ctx.user_id)
    return users + (user,), user


def update_user(
    users: tuple[User, ...],
    roles: tuple[Role, ...],
    ctx: AccessContext,
    user_id: str,
    *,
    category_ids: set[str] | None = None,
    **fields,
) -> tuple[tuple[User, ...], User]:
    """Update user fields.

    Accepted fields: username, full_name, email, role_id, auth_type, password,
    password_confirmation, permissions. A blank password keeps the current one.
    """
    _require(ctx, Capability.MANAGE_USERS, "update_user")
    current = get_user(users, user_id)
    changes = {}

    if "username" in fields:
        changes["username"] = _check_username(users, fields["username"], exclude_id=user_id)
    if "full_name" in fields:
        changes["full_name"] = (fields["full_name"] or "").strip() or current.full_name
    if "email" in fields:
        changes["email"] = _normalize_email(fields["email"])
    if "role_id" in fields:
        _check_role(roles, fields["role_id"])
        changes["role_id"] = fields["role_id"]
    if "permissions" in fields:
        changes["permissions"] = _parse_permissions(fields["permissions"], category_ids)

    auth_type = _parse_auth_type(fields.get("auth_type", current.auth_type))
    changes["auth_type"] = auth_type
    password = fields.get("password")
    if auth_type == AuthType.DIRECTORY:
        changes["password_hash"] = None
    elif password:
        _check_password(password, fields.get("password_confirmation"))
        changes["password_hash"] = hash_password(password)
    elif current.password_hash is None:
        # switching a directory account to LOCAL
        raise ValidationError(
            "La contraseña es obligatoria para nuevos usuarios locales.",
            details={"password": "required"},
        )

    user = replace(current, **changes)
    updated = tuple(user if u.id == user_id else u for u in users)
    logger.info("User %s updated by %s", user_id, ctx.user_id)
    return updated, user


def delete_user(users: tuple[User, ...], ctx: AccessContext, user_id: str) -> tuple[User, ...]:
    _require(ctx, Capability.MANAGE_USERS, "delete_user")
    get_user(users, user_id)
    if user_id == ctx.user_id:
        raise ConflictError("A user cannot delete their own account", "User", user_id)
    logger.info("User %s deleted by %s", user_id, ctx.user_id)
    return tuple(u for u in users if u.id != user_id)


def with_category_access(user: User, category_id: str, level: str) -> User:
    """Return ``user`` with its grant on ``category_id`` set to none/view/edit."""
    if level not in ACCESS_LEVELS:
        raise ValidationError(f"Unknown access level: {level!r}", details={"level": list(ACCESS_LEVELS)})
    permissions = tuple(p for p in user.permissions if p.category_id != category_id)
    if level != "none":
        permissions += (Permission(category_id=category_id, can_edit=level == "edit"),)
    return replace(user, permissions=permissions)


def set_category_access(
    users: tuple[User, ...],
    ctx: AccessContext,
    user_id: str,
    category_id: str,
    level: str,
    *,
    category_ids: set[str] | None = None,
) -> tuple[tuple[User, ...], User]:
    _require(ctx, Capability.MANAGE_USERS, "set_category_access")
    if category_ids is not None and category_id not in category_ids:
        raise NotFoundError("Category", category_id)
    user = with_category_access(get_user(users, user_id), category_id, level)
    updated = tuple(user if u.id == user_id else u for u in users)
    logger.info("User %s access on %s set to %s by %s", user_id, category_id, level, ctx.user_id)
    return updated, user
