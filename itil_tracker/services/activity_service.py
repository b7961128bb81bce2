"""
Activity Service — mutation requests against the practice tree.

Every function takes the current (full) practice tree and the caller's
``AccessContext`` and either returns a new tree or raises; the input tree is
never modified, so a rejected request leaves the store exactly as it was.

Rules enforced here:
  - name is required; progress is an integer in 0..100
  - progress 100 needs at least one evidence document
  - progress 100 without a completion date completes today; progress < 100
    clears the completion date
  - CLOSED activities accept no edits and no document changes; only reopen
  - categories the caller cannot see behave as missing (NotFoundError)

Usage:
    from itil_tracker.services import activity_service

    practices, activity = activity_service.save_activity(
        practices, ctx, path, {"name": "Revisión", "progress": 40}, today=today,
    )
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime

from itil_tracker.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from itil_tracker.models.auth import Capability
from itil_tracker.models.integrations import SharePointConfig
from itil_tracker.models.practice import Activity, ActivityPath
from itil_tracker.services import document_versioning, status_engine, tree
from itil_tracker.services.visibility import AccessContext
from itil_tracker.utils.helpers import parse_date

logger = logging.getLogger(__name__)

EVIDENCE_REQUIRED_MESSAGE = (
    "Para finalizar la actividad (100% de progreso), es obligatorio adjuntar "
    "al menos un documento de evidencia."
)

_EDITABLE_FIELDS = ("name", "description", "responsible", "due_date", "completion_date", "progress")


@dataclass(frozen=True)
class UploadOutcome:
    """Result of an upload request.

    ``committed`` is False when the upload collides with an existing original
    name and the caller has not confirmed it; ``practices`` is then the
    unchanged input tree.
    """
    plan: document_versioning.UploadPlan
    committed: bool
    practices: tree.Practices
    activity: Activity

    def to_dict(self) -> dict:
        return {
            **self.plan.to_dict(),
            "committed": self.committed,
            "activity": self.activity.to_dict(),
        }


def new_activity_id(subcategory_id: str) -> str:
    return f"a-{subcategory_id}-{uuid.uuid4().hex[:8]}"


# ── Helpers ──────────────────────────────────────────────────────────────────


def _ensure_visible(ctx: AccessContext, path: ActivityPath) -> None:
    if not ctx.can_view_category(path.category_id):
        raise NotFoundError("Category", path.category_id)


def _load(practices, ctx: AccessContext, path: ActivityPath) -> Activity:
    _ensure_visible(ctx, path)
    return tree.get_activity(practices, path)


def _ensure_open(activity: Activity, action: str) -> None:
    if activity.is_closed:
        logger.warning("Rejected %s on closed activity %s", action, activity.id)
        raise ConflictError(
            f"Activity {activity.id} is closed; reopen it before '{action}'",
            resource="Activity",
            resource_id=activity.id,
        )


def _parse_progress(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError("Invalid progress", details={"progress": "must be an integer 0-100"})
    try:
        progress = int(value)
    except ValueError:
        raise ValidationError(
            "Invalid progress", details={"progress": "must be an integer 0-100"}
        ) from None
    if not 0 <= progress <= 100:
        raise ValidationError(
            "Progress must be between 0 and 100", details={"progress": "out of range"}
        )
    return progress


def _parse_date_field(data: dict, key: str, current):
    if key not in data:
        return current
    try:
        return parse_date(data[key])
    except ValueError as exc:
        raise ValidationError(str(exc), details={key: "invalid date"}) from None


def _merge(base: Activity, data: dict, today: date) -> Activity:
    """Apply request fields to ``base`` and re-derive dates and statuses."""
    unknown = set(data) - set(_EDITABLE_FIELDS) - {"id", "documents"}
    if unknown:
        logger.debug("Ignoring unknown activity fields: %s", sorted(unknown))

    name = data.get("name", base.name)
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Activity name is required", details={"name": "required"})

    progress = _parse_progress(data["progress"]) if "progress" in data else base.progress
    due_date = _parse_date_field(data, "due_date", base.due_date)
    completion_date = _parse_date_field(data, "completion_date", base.completion_date)

    if progress == status_engine.COMPLETE_PROGRESS:
        if not base.documents:
            raise ValidationError(EVIDENCE_REQUIRED_MESSAGE, details={"documents": "required"})
        completion_date = completion_date or today
    else:
        completion_date = None

    responsible = data.get("responsible", base.responsible) or None
    description = data.get("description", base.description) or ""

    merged = replace(
        base,
        name=name,
        description=description,
        responsible=responsible,
        due_date=due_date,
        completion_date=completion_date,
        progress=progress,
    )
    return status_engine.apply_derived_status(merged, today)


# ═════════════════════════════════════════════════════════════════════════════
# Activity CRUD
# ═════════════════════════════════════════════════════════════════════════════


def save_activity(
    practices: tree.Practices,
    ctx: AccessContext,
    path: ActivityPath,
    data: dict,
    *,
    today: date | None = None,
) -> tuple[tree.Practices, Activity]:
    """Create (``path.activity_id`` is None) or update an activity.

    Returns ``(new_practices, saved_activity)``.
    """
    today = today or date.today()
    _ensure_visible(ctx, path)

    if path.activity_id is None:
        tree.get_subcategory(practices, path)
        if not ctx.can_edit_category(path.category_id):
            logger.warning("User %s may not create activities in %s", ctx.user_id, path.category_id)
            raise PermissionDenied(ctx.user_id, "create_activity", path.category_id)
        base = Activity(id=new_activity_id(path.subcategory_id), name="")
        activity = _merge(base, data, today)
        updated = tree.insert_activity(practices, path, activity)
        logger.info("Activity %s created in %s by %s", activity.id, path.subcategory_id, ctx.user_id)
        return updated, activity

    existing = tree.get_activity(practices, path)
    _ensure_open(existing, "update")
    if not ctx.can_edit_activity(path.category_id, existing):
        logger.warning("User %s may not edit activity %s", ctx.user_id, existing.id)
        raise PermissionDenied(ctx.user_id, "update_activity", existing.id)

    activity = _merge(existing, data, today)
    updated = tree.replace_activity(practices, path, activity)
    logger.info(
        "Activity %s updated by %s (progress=%d status=%s)",
        activity.id, ctx.user_id, activity.progress, activity.activity_status.name,
    )
    return updated, activity


def delete_activity(practices: tree.Practices, ctx: AccessContext, path: ActivityPath) -> tree.Practices:
    activity = _load(practices, ctx, path)
    if not ctx.can(Capability.DELETE_ACTIVITY):
        logger.warning("User %s may not delete activities", ctx.user_id)
        raise PermissionDenied(ctx.user_id, "delete_activity", activity.id)
    _ensure_open(activity, "delete")
    updated = tree.remove_activity(practices, path)
    logger.info("Activity %s deleted by %s", activity.id, ctx.user_id)
    return updated


def clone_activity(
    practices: tree.Practices,
    ctx: AccessContext,
    path: ActivityPath,
    *,
    today: date | None = None,
) -> tuple[tree.Practices, Activity]:
    """Copy an OPEN activity into the same subcategory under a new id."""
    activity = _load(practices, ctx, path)
    if not ctx.can(Capability.CLONE_ACTIVITY):
        logger.warning("User %s may not clone activities", ctx.user_id)
        raise PermissionDenied(ctx.user_id, "clone_activity", activity.id)
    _ensure_open(activity, "clone")
    clone = status_engine.clone_activity(activity, new_activity_id(path.subcategory_id), today)
    updated = tree.insert_activity(practices, path, clone)
    logger.info("Activity %s cloned to %s by %s", activity.id, clone.id, ctx.user_id)
    return updated, clone


def reopen_activity(
    practices: tree.Practices,
    ctx: AccessContext,
    path: ActivityPath,
    *,
    today: date | None = None,
) -> tuple[tree.Practices, Activity]:
    activity = _load(practices, ctx, path)
    if not activity.is_closed:
        raise ConflictError(
            f"Activity {activity.id} is not closed", resource="Activity", resource_id=activity.id
        )
    if not ctx.can_reopen_activity(activity):
        logger.warning("User %s may not reopen activity %s", ctx.user_id, activity.id)
        raise PermissionDenied(ctx.user_id, "reopen_activity", activity.id)
    reopened = status_engine.reopen_activity(activity, today)
    updated = tree.replace_activity(practices, path, reopened)
    logger.info("Activity %s reopened by %s", activity.id, ctx.user_id)
    return updated, reopened


# ═════════════════════════════════════════════════════════════════════════════
# Evidence documents
# ═════════════════════════════════════════════════════════════════════════════


def _load_editable(practices, ctx: AccessContext, path: ActivityPath, action: str) -> Activity:
    activity = _load(practices, ctx, path)
    _ensure_open(activity, action)
    if not ctx.can_edit_activity(path.category_id, activity):
        logger.warning("User %s may not %s on %s", ctx.user_id, action, activity.id)
        raise PermissionDenied(ctx.user_id, action, activity.id)
    return activity


def upload_document(
    practices: tree.Practices,
    ctx: AccessContext,
    path: ActivityPath,
    original_name: str,
    size: int | None = None,
    *,
    confirm: bool = False,
    sharepoint: SharePointConfig | None = None,
    max_bytes: int = document_versioning.DEFAULT_MAX_UPLOAD_BYTES,
    now: datetime | None = None,
) -> UploadOutcome:
    """Attach a new evidence document (or a new version of one).

    A collision with an existing original name is committed only when
    ``confirm`` is true; otherwise the plan is returned uncommitted.
    """
    activity = _load_editable(practices, ctx, path, "upload_document")
    document_versioning.validate_upload(original_name, size, max_bytes=max_bytes)

    sharepoint = sharepoint or SharePointConfig()
    subcategory = tree.get_subcategory(practices, path)
    plan = document_versioning.plan_upload(
        activity.documents,
        original_name,
        activity.id,
        activity.name,
        sharepoint.max_file_name_length,
        now=now,
        storage=sharepoint,
        folder_path=subcategory.sharepoint_folder_path,
    )

    if plan.requires_confirmation and not confirm:
        logger.info(
            "Upload of %s on %s needs confirmation (version %d)",
            original_name, activity.id, plan.document.version,
        )
        return UploadOutcome(plan=plan, committed=False, practices=practices, activity=activity)

    updated_activity = replace(activity, documents=activity.documents + (plan.document,))
    updated = tree.replace_activity(practices, path, updated_activity)
    logger.info(
        "Document %s (v%d) attached to %s by %s",
        plan.document.name, plan.document.version, activity.id, ctx.user_id,
    )
    return UploadOutcome(plan=plan, committed=True, practices=updated, activity=updated_activity)


def delete_document(
    practices: tree.Practices,
    ctx: AccessContext,
    path: ActivityPath,
    document_id: str,
) -> tuple[tree.Practices, Activity]:
    activity = _load_editable(practices, ctx, path, "delete_document")
    documents = document_versioning.remove_document(activity.documents, document_id)
    updated_activity = replace(activity, documents=documents)
    updated = tree.replace_activity(practices, path, updated_activity)
    logger.info("Document %s removed from %s by %s", document_id, activity.id, ctx.user_id)
    return updated, updated_activity
