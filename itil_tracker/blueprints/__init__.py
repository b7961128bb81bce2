"""
ITIL Governance Tracker
Blueprint registry and request-scoped helpers.
"""

from datetime import date

from flask import current_app, g

from itil_tracker.core.exceptions import NotFoundError
from itil_tracker.models.practice import ActivityPath
from itil_tracker.services import tree
from itil_tracker.services.visibility import AccessContext
from itil_tracker.store import EXTENSION_KEY, TrackerStore


def get_store() -> TrackerStore:
    return current_app.extensions[EXTENSION_KEY]


def current_access() -> AccessContext:
    """Resolve the acting user and role once per request.

    The JWT middleware guarantees ``g.current_user_id`` names an existing user.
    """
    ctx = getattr(g, "access_context", None)
    if ctx is not None:
        return ctx
    state = get_store().snapshot()
    user = next(u for u in state.users if u.id == g.current_user_id)
    role = next((r for r in state.roles if r.id == user.role_id), None)
    if role is None:
        raise NotFoundError("Role", user.role_id)
    g.access_context = AccessContext(user=user, role=role)
    return g.access_context


def today() -> date:
    return date.today()


def activity_path(practices, ctx: AccessContext, activity_id: str) -> ActivityPath:
    """Locate an activity by id within the caller's visible tree."""
    located = tree.locate_activity(practices, activity_id)
    if not ctx.can_view_category(located.category.id):
        raise NotFoundError("Activity", activity_id)
    return located.path
