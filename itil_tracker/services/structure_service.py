"""
Structure Service — practices, categories and subcategories.

Only administrator-equivalent roles (VIEW_ALL_CATEGORIES) may change the
structure of the tree. Deleting a node deletes everything below it; callers
removing categories also run `drop_category_references` so no user keeps a
grant, and no pending access request stays open, for a category that is gone.

Usage:
    from itil_tracker.services import structure_service

    practices, practice = structure_service.create_practice(
        practices, ctx, name="Gestión de incidentes", group="Entrega y soporte",
    )
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from itil_tracker.core.exceptions import ConflictError, PermissionDenied, ValidationError
from itil_tracker.models.auth import AccessRequest, AccessRequestStatus, User
from itil_tracker.models.practice import (
    ITIL_PRACTICE_GROUPS,
    Category,
    Practice,
    PracticeGroup,
    Subcategory,
    group_names,
)
from itil_tracker.services import tree
from itil_tracker.services.visibility import AccessContext

logger = logging.getLogger(__name__)


def _require_admin(ctx: AccessContext, action: str) -> None:
    if not ctx.is_administrator:
        logger.warning("User %s may not %s", ctx.user_id, action)
        raise PermissionDenied(ctx.user_id, action)


def _required_name(value, field: str = "name") -> str:
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise ValidationError(f"{field} is required", details={field: "required"})
    return name


def _validate_group(group, groups: tuple[PracticeGroup, ...]) -> str:
    if group not in group_names(groups):
        raise ValidationError(
            f"Unknown practice group: {group!r}",
            details={"group": f"must be one of {group_names(groups)}"},
        )
    return group


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


# ═════════════════════════════════════════════════════════════════════════════
# Practices
# ═════════════════════════════════════════════════════════════════════════════


def create_practice(
    practices: tree.Practices,
    ctx: AccessContext,
    *,
    name: str,
    group: str,
    practice_id: str | None = None,
    groups: tuple[PracticeGroup, ...] = ITIL_PRACTICE_GROUPS,
) -> tuple[tree.Practices, Practice]:
    _require_admin(ctx, "create_practice")
    name = _required_name(name)
    group = _validate_group(group, groups)
    practice_id = practice_id or _new_id("p")
    if any(p.id == practice_id for p in practices):
        raise ConflictError(f"Practice id {practice_id} already exists", "Practice", practice_id)

    practice = Practice(id=practice_id, name=name, group=group)
    logger.info("Practice %s (%s) created by %s", practice_id, name, ctx.user_id)
    return practices + (practice,), practice


def update_practice(
    practices: tree.Practices,
    ctx: AccessContext,
    practice_id: str,
    *,
    name: str | None = None,
    group: str | None = None,
    groups: tuple[PracticeGroup, ...] = ITIL_PRACTICE_GROUPS,
) -> tuple[tree.Practices, Practice]:
    _require_admin(ctx, "update_practice")
    current = tree.find_practice(practices, practice_id)
    changes = {}
    if name is not None:
        changes["name"] = _required_name(name)
    if group is not None:
        changes["group"] = _validate_group(group, groups)
    practice = replace(current, **changes)
    updated = tree.update_practice(practices, practice_id, lambda _old: practice)
    logger.info("Practice %s updated by %s", practice_id, ctx.user_id)
    return updated, practice


def delete_practice(practices: tree.Practices, ctx: AccessContext, practice_id: str) -> tree.Practices:
    _require_admin(ctx, "delete_practice")
    tree.find_practice(practices, practice_id)
    logger.info("Practice %s deleted by %s", practice_id, ctx.user_id)
    return tuple(p for p in practices if p.id != practice_id)


# ═════════════════════════════════════════════════════════════════════════════
# Categories
# ═════════════════════════════════════════════════════════════════════════════


def create_category(
    practices: tree.Practices,
    ctx: AccessContext,
    practice_id: str,
    *,
    name: str,
) -> tuple[tree.Practices, Category]:
    _require_admin(ctx, "create_category")
    name = _required_name(name)
    practice = tree.find_practice(practices, practice_id)
    category = Category(id=f"{practice_id}-{_new_id('c')}", name=name)
    updated = tree.update_practice(
        practices, practice.id, lambda p: replace(p, categories=p.categories + (category,))
    )
    logger.info("Category %s created in %s by %s", category.id, practice_id, ctx.user_id)
    return updated, category


def rename_category(
    practices: tree.Practices,
    ctx: AccessContext,
    category_id: str,
    *,
    name: str,
) -> tuple[tree.Practices, Category]:
    _require_admin(ctx, "rename_category")
    name = _required_name(name)
    practice, current = tree.find_category(practices, category_id)
    category = replace(current, name=name)
    updated = tree.update_category(practices, practice.id, category_id, lambda _old: category)
    logger.info("Category %s renamed by %s", category_id, ctx.user_id)
    return updated, category


def delete_category(practices: tree.Practices, ctx: AccessContext, category_id: str) -> tree.Practices:
    _require_admin(ctx, "delete_category")
    practice, _category = tree.find_category(practices, category_id)
    updated = tree.update_practice(
        practices,
        practice.id,
        lambda p: replace(p, categories=tuple(c for c in p.categories if c.id != category_id)),
    )
    logger.info("Category %s deleted by %s", category_id, ctx.user_id)
    return updated


# ═════════════════════════════════════════════════════════════════════════════
# Subcategories
# ═════════════════════════════════════════════════════════════════════════════


def create_subcategory(
    practices: tree.Practices,
    ctx: AccessContext,
    category_id: str,
    *,
    name: str,
    sharepoint_folder_path: str | None = None,
) -> tuple[tree.Practices, Subcategory]:
    _require_admin(ctx, "create_subcategory")
    name = _required_name(name)
    practice, _category = tree.find_category(practices, category_id)
    subcategory = Subcategory(
        id=f"sc-{category_id}-{uuid.uuid4().hex[:8]}",
        name=name,
        sharepoint_folder_path=sharepoint_folder_path or None,
    )
    updated = tree.update_category(
        practices,
        practice.id,
        category_id,
        lambda c: replace(c, subcategories=c.subcategories + (subcategory,)),
    )
    logger.info("Subcategory %s created in %s by %s", subcategory.id, category_id, ctx.user_id)
    return updated, subcategory


def update_subcategory_folder(
    practices: tree.Practices,
    ctx: AccessContext,
    subcategory_id: str,
    folder_path: str | None,
) -> tuple[tree.Practices, Subcategory]:
    """Set (or clear, with None/"") the document library folder of a subcategory."""
    _require_admin(ctx, "update_subcategory_folder")
    path = tree.find_subcategory(practices, subcategory_id)
    folder = folder_path.strip() if isinstance(folder_path, str) else None
    updated = tree.update_subcategory(
        practices, path, lambda sc: replace(sc, sharepoint_folder_path=folder or None)
    )
    logger.info("Subcategory %s folder set to %r by %s", subcategory_id, folder, ctx.user_id)
    return updated, tree.get_subcategory(updated, path)


def delete_subcategory(practices: tree.Practices, ctx: AccessContext, subcategory_id: str) -> tree.Practices:
    _require_admin(ctx, "delete_subcategory")
    path = tree.find_subcategory(practices, subcategory_id)
    updated = tree.update_category(
        practices,
        path.practice_id,
        path.category_id,
        lambda c: replace(
            c, subcategories=tuple(s for s in c.subcategories if s.id != subcategory_id)
        ),
    )
    logger.info("Subcategory %s deleted by %s", subcategory_id, ctx.user_id)
    return updated


# ═════════════════════════════════════════════════════════════════════════════
# References to removed categories
# ═════════════════════════════════════════════════════════════════════════════


def drop_category_references(
    users: tuple[User, ...],
    requests: tuple[AccessRequest, ...],
    category_ids: set[str],
) -> tuple[tuple[User, ...], tuple[AccessRequest, ...]]:
    """Remove grants and pending requests pointing at ``category_ids``.

    Decided requests are history and stay. Users without a matching grant
    are returned as the same objects.
    """
    if not category_ids:
        return users, requests
    pruned_users = tuple(
        replace(u, permissions=tuple(p for p in u.permissions if p.category_id not in category_ids))
        if any(p.category_id in category_ids for p in u.permissions) else u
        for u in users
    )
    pruned_requests = tuple(
        r for r in requests
        if not (r.status == AccessRequestStatus.PENDING and r.category_id in category_ids)
    )
    dropped = len(requests) - len(pruned_requests)
    if dropped:
        logger.info("Dropped %d pending access request(s) for removed categories", dropped)
    return pruned_users, pruned_requests
