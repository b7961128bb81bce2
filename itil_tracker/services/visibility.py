"""
Visibility Filter — role- and permission-based pruning of the practice tree.

Category is the unit of access control:
  - A role with VIEW_ALL_CATEGORIES sees (and edits) everything.
  - Otherwise a user sees the categories they hold a Permission for and edits
    the ones where ``can_edit`` is true.
  - The responsible user of an OPEN activity may edit it without category
    edit rights.
  - CLOSED activities are never edited directly; only a VIEW_ALL_CATEGORIES
    role may reopen them.
  - Clone and delete are separate role capabilities, offered on OPEN
    activities only.

Subcategories and activities inside a visible category are not filtered.

Usage:
    from itil_tracker.services.visibility import AccessContext

    ctx = AccessContext(user, role)
    tree = ctx.visible_practices(practices)
    if ctx.can_edit_activity(category_id, activity):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from itil_tracker.models.auth import Capability, Role, User
from itil_tracker.models.practice import Activity, Practice


def visible_practices(practices: tuple[Practice, ...], user: User, role: Role) -> tuple[Practice, ...]:
    """Return the part of the tree ``user`` may see.

    With VIEW_ALL_CATEGORIES the input tree is returned as-is (same object).
    Otherwise a filtered copy: each practice keeps only permitted categories,
    and practices left with none are dropped. The input is never mutated.
    """
    if role.can_view_all_categories:
        return practices

    allowed = {perm.category_id for perm in user.permissions}
    result = []
    for practice in practices:
        categories = tuple(c for c in practice.categories if c.id in allowed)
        if not categories:
            continue
        if len(categories) == len(practice.categories):
            result.append(practice)
        else:
            result.append(replace(practice, categories=categories))
    return tuple(result)


def can_view_category(user: User, role: Role, category_id: str) -> bool:
    if role.can_view_all_categories:
        return True
    return user.permission_for(category_id) is not None


def can_edit_category(user: User, role: Role, category_id: str) -> bool:
    if role.can_view_all_categories:
        return True
    permission = user.permission_for(category_id)
    return bool(permission and permission.can_edit)


def can_edit_activity(user: User, role: Role, category_id: str, activity: Activity) -> bool:
    if activity.is_closed:
        return False
    if can_edit_category(user, role, category_id):
        return True
    return activity.responsible is not None and activity.responsible == user.id


def can_reopen_activity(role: Role, activity: Activity) -> bool:
    return activity.is_closed and role.can_view_all_categories


def can_clone_activity(role: Role, activity: Activity) -> bool:
    return not activity.is_closed and role.can_clone_activity


def can_delete_activity(role: Role, activity: Activity) -> bool:
    return not activity.is_closed and role.can_delete_activity


@dataclass(frozen=True)
class AccessContext:
    """The acting user and their role, resolved once per request."""
    user: User
    role: Role

    @property
    def user_id(self) -> str:
        return self.user.id

    def can(self, capability: Capability) -> bool:
        return self.role.can(capability)

    @property
    def is_administrator(self) -> bool:
        return self.role.can_view_all_categories

    def visible_practices(self, practices: tuple[Practice, ...]) -> tuple[Practice, ...]:
        return visible_practices(practices, self.user, self.role)

    def can_view_category(self, category_id: str) -> bool:
        return can_view_category(self.user, self.role, category_id)

    def can_edit_category(self, category_id: str) -> bool:
        return can_edit_category(self.user, self.role, category_id)

    def can_edit_activity(self, category_id: str, activity: Activity) -> bool:
        return can_edit_activity(self.user, self.role, category_id, activity)

    def can_reopen_activity(self, activity: Activity) -> bool:
        return can_reopen_activity(self.role, activity)

    def can_clone_activity(self, activity: Activity) -> bool:
        return can_clone_activity(self.role, activity)

    def can_delete_activity(self, activity: Activity) -> bool:
        return can_delete_activity(self.role, activity)

    def activity_actions(self, category_id: str, activity: Activity) -> dict[str, bool]:
        """Which actions to offer on one activity."""
        return {
            "edit": self.can_edit_activity(category_id, activity),
            "reopen": self.can_reopen_activity(activity),
            "clone": self.can_clone_activity(activity),
            "delete": self.can_delete_activity(activity),
        }
