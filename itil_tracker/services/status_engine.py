"""
Status Engine — traffic-light and lifecycle derivation for activities.

Semaphore rules, in priority order:
  1. completed, no due date            → GREEN
  2. completed, due date               → GREEN if completed on/before due, else RED
  3. not completed, no due date        → GRAY
  4. not completed, due date           → RED if due before today, else ORANGE

Lifecycle: OPEN while progress < 100, CLOSED at 100.

All comparisons are date-only; datetimes are truncated to their date.
Every function here is pure and total.

Usage:
    from itil_tracker.services.status_engine import apply_derived_status

    activity = apply_derived_status(activity, today=date(2024, 1, 15))
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from itil_tracker.models.practice import Activity, ActivityStatus, SemaphoreStatus

COMPLETE_PROGRESS = 100
REOPEN_PROGRESS = 99
CLONE_NAME_PREFIX = "Copia de "


def as_date(value: date | datetime | None) -> date | None:
    """Strip the time of day; ``datetime`` is a subclass of ``date``."""
    if isinstance(value, datetime):
        return value.date()
    return value


def derive_semaphore_status(
    due_date: date | datetime | None,
    completion_date: date | datetime | None,
    today: date | datetime | None = None,
) -> SemaphoreStatus:
    """Classify an activity from its due and completion dates."""
    due = as_date(due_date)
    completed = as_date(completion_date)

    if completed is not None:
        if due is None:
            return SemaphoreStatus.GREEN
        return SemaphoreStatus.GREEN if completed <= due else SemaphoreStatus.RED

    if due is None:
        return SemaphoreStatus.GRAY

    reference = as_date(today) or date.today()
    return SemaphoreStatus.RED if due < reference else SemaphoreStatus.ORANGE


def derive_activity_status(progress: int) -> ActivityStatus:
    return ActivityStatus.OPEN if progress < COMPLETE_PROGRESS else ActivityStatus.CLOSED


def apply_derived_status(activity: Activity, today: date | None = None) -> Activity:
    """Return ``activity`` with both derived statuses recomputed and stored."""
    return replace(
        activity,
        activity_status=derive_activity_status(activity.progress),
        semaphore_status=derive_semaphore_status(
            activity.due_date, activity.completion_date, today
        ),
    )


def reopen_activity(activity: Activity, today: date | None = None) -> Activity:
    """Reopen a closed activity.

    Progress drops to 99 rather than 0 so the activity reads as nearly done
    but has to go through completion (and its evidence check) again.
    """
    reopened = replace(activity, progress=REOPEN_PROGRESS, completion_date=None)
    return apply_derived_status(reopened, today)


def clone_activity(activity: Activity, new_id: str, today: date | None = None) -> Activity:
    """Copy an activity as a fresh, open, not-started one.

    Documents are carried over with the copy.
    """
    cloned = replace(
        activity,
        id=new_id,
        name=f"{CLONE_NAME_PREFIX}{activity.name}",
        progress=0,
        completion_date=None,
    )
    return apply_derived_status(cloned, today)


def semaphore_label(status: SemaphoreStatus, completion_date: date | None = None) -> str:
    """Human-readable label for a semaphore status."""
    if status == SemaphoreStatus.GREEN:
        return "Completado a tiempo"
    if status == SemaphoreStatus.RED:
        return "Completado atrasado" if completion_date else "Vencido"
    if status == SemaphoreStatus.ORANGE:
        return "Por iniciar"
    return "No iniciado"
