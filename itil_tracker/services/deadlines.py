"""
Deadline Scheduler — upcoming due dates of outstanding activities.

Only activities with a due date and no completion date are considered. Each
is placed in the smallest window ``w`` with ``previous < days_until_due <= w``,
where ``previous`` is the preceding window (or "today" for the first window,
which includes activities due today). Past-due activities land in no bucket;
they surface as RED through the status engine instead.

Usage:
    from itil_tracker.services.deadlines import upcoming_deadlines

    buckets = upcoming_deadlines(activities, today=date(2024, 1, 15))
    buckets[7]   # due within the next 7 days (today included)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from itil_tracker.models.practice import Activity, Practice
from itil_tracker.services.status_engine import as_date
from itil_tracker.services.tree import LocatedActivity, iter_located_activities

DEFAULT_WINDOWS: tuple[int, ...] = (7, 15, 30)


def days_until_due(activity: Activity, today: date) -> int | None:
    """Days from ``today`` to the due date of an outstanding activity, else None."""
    if activity.due_date is None or activity.completion_date is not None:
        return None
    return (as_date(activity.due_date) - as_date(today)).days


def bucket_for(days: int | None, windows: Sequence[int]) -> int | None:
    """Window that ``days`` falls in, or None (past due, beyond range, not outstanding)."""
    if days is None or days < 0:
        return None
    for window in windows:
        if days <= window:
            return window
    return None


def _normalize_windows(windows: Iterable[int]) -> tuple[int, ...]:
    ordered = tuple(sorted(set(windows)))
    if not ordered or ordered[0] < 0:
        raise ValueError("deadline windows must be non-negative and non-empty")
    return ordered


def upcoming_deadlines(
    activities: Iterable[Activity],
    today: date,
    windows: Iterable[int] = DEFAULT_WINDOWS,
) -> dict[int, list[Activity]]:
    """Bucket outstanding activities by due-date window.

    Every window is a key of the result, empty or not. Order within a bucket
    follows the input order.
    """
    ordered = _normalize_windows(windows)
    buckets: dict[int, list[Activity]] = {w: [] for w in ordered}
    for activity in activities:
        window = bucket_for(days_until_due(activity, today), ordered)
        if window is not None:
            buckets[window].append(activity)
    return buckets


@dataclass(frozen=True)
class DeadlineEntry:
    """A bucketed activity with the names the dashboard shows next to it."""
    located: LocatedActivity
    days_until_due: int

    def to_dict(self) -> dict:
        loc = self.located
        return {
            "activity": loc.activity.to_dict(),
            "days_until_due": self.days_until_due,
            "practice_id": loc.practice.id,
            "practice_name": loc.practice.name,
            "category_id": loc.category.id,
            "category_name": loc.category.name,
            "subcategory_id": loc.subcategory.id,
            "subcategory_name": loc.subcategory.name,
        }


def deadline_entries(
    practices: tuple[Practice, ...],
    today: date,
    windows: Iterable[int] = DEFAULT_WINDOWS,
) -> dict[int, list[DeadlineEntry]]:
    """Same bucketing as ``upcoming_deadlines`` over a (visible) practice tree."""
    ordered = _normalize_windows(windows)
    buckets: dict[int, list[DeadlineEntry]] = {w: [] for w in ordered}
    for located in iter_located_activities(practices):
        days = days_until_due(located.activity, today)
        window = bucket_for(days, ordered)
        if window is not None:
            buckets[window].append(DeadlineEntry(located=located, days_until_due=days))
    return buckets
