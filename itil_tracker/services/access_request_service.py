"""
Access Request Service — users asking for access to a category.

Lifecycle: PENDING → APPROVED | REJECTED. Decided requests are final.
Approving grants a view-only permission on the requested category unless the
user already holds one (an existing edit grant is never downgraded).

Usage:
    from itil_tracker.services import access_request_service as ars

    requests, users, req = ars.approve_request(requests, users, ctx, "req1")
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from itil_tracker.core.exceptions import ConflictError, NotFoundError, PermissionDenied
from itil_tracker.models.auth import AccessRequest, AccessRequestStatus, Capability, User
from itil_tracker.services.user_service import get_user, with_category_access
from itil_tracker.services.visibility import AccessContext

logger = logging.getLogger(__name__)

Requests = tuple[AccessRequest, ...]


def visible_requests(requests: Requests, ctx: AccessContext) -> list[AccessRequest]:
    """User managers see every request; everyone else sees their own."""
    if ctx.can(Capability.MANAGE_USERS):
        return list(requests)
    return [r for r in requests if r.user_id == ctx.user_id]


def get_request(requests: Requests, request_id: str) -> AccessRequest:
    for req in requests:
        if req.id == request_id:
            return req
    raise NotFoundError("AccessRequest", request_id)


def create_request(
    requests: Requests,
    ctx: AccessContext,
    category_id: str,
    *,
    category_ids: set[str],
    now: datetime | None = None,
) -> tuple[Requests, AccessRequest]:
    """File a request on behalf of the acting user."""
    if category_id not in category_ids:
        raise NotFoundError("Category", category_id)
    if ctx.can_view_category(category_id):
        raise ConflictError(f"User already has access to category {category_id}", "Category", category_id)
    for req in requests:
        if (req.user_id == ctx.user_id and req.category_id == category_id
                and req.status == AccessRequestStatus.PENDING):
            raise ConflictError("A pending request for this category already exists", "AccessRequest", req.id)

    request = AccessRequest(
        id=f"req-{uuid.uuid4().hex[:8]}",
        user_id=ctx.user_id,
        category_id=category_id,
        request_date=now or datetime.now(timezone.utc),
    )
    logger.info("Access request %s filed by %s for %s", request.id, ctx.user_id, category_id)
    return requests + (request,), request


def _decide(requests: Requests, ctx: AccessContext, request_id: str, status: AccessRequestStatus):
    if not ctx.can(Capability.MANAGE_USERS):
        logger.warning("User %s may not decide access requests", ctx.user_id)
        raise PermissionDenied(ctx.user_id, "decide_access_request", request_id)
    current = get_request(requests, request_id)
    if current.status != AccessRequestStatus.PENDING:
        raise ConflictError(
            f"Access request {request_id} is already {current.status.value}",
            "AccessRequest",
            request_id,
        )
    decided = replace(current, status=status)
    return tuple(decided if r.id == request_id else r for r in requests), decided


def approve_request(
    requests: Requests,
    users: tuple[User, ...],
    ctx: AccessContext,
    request_id: str,
) -> tuple[Requests, tuple[User, ...], AccessRequest]:
    updated_requests, decided = _decide(requests, ctx, request_id, AccessRequestStatus.APPROVED)
    user = get_user(users, decided.user_id)
    updated_users = users
    if user.permission_for(decided.category_id) is None:
        granted = with_category_access(user, decided.category_id, "view")
        updated_users = tuple(granted if u.id == user.id else u for u in users)
    logger.info("Access request %s approved by %s", request_id, ctx.user_id)
    return updated_requests, updated_users, decided


def reject_request(requests: Requests, ctx: AccessContext, request_id: str) -> tuple[Requests, AccessRequest]:
    updated, decided = _decide(requests, ctx, request_id, AccessRequestStatus.REJECTED)
    logger.info("Access request %s rejected by %s", request_id, ctx.user_id)
    return updated, decided
