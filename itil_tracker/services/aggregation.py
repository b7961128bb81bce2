"""
Aggregation Engine — dashboard rollups by category, practice and group.

An activity counts toward a rollup only when it has a due date inside the
selected period. Practice and category rollups are computed from their
activities; group rollups are summed from the member practices' rollups
(average progress weighted by each practice's filtered count), so a group
total always equals the sum of its practice totals under the same filter.

Months are 0-based (0 = January) to match the period selector.

Usage:
    from itil_tracker.services.aggregation import PeriodFilter, practice_rollups, group_rollups

    period = PeriodFilter(year=2024, month="all")
    by_practice = practice_rollups(visible, period)
    by_group = group_rollups(by_practice)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Union

from itil_tracker.models.practice import (
    ITIL_PRACTICE_GROUPS,
    Activity,
    ActivityStatus,
    Practice,
    PracticeGroup,
    SemaphoreStatus,
)
from itil_tracker.services.status_engine import as_date
from itil_tracker.services.tree import iter_activities

ALL = "all"
PeriodValue = Union[int, Literal["all"]]

MONTH_NAMES = (
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
)


@dataclass(frozen=True)
class PeriodFilter:
    year: PeriodValue = ALL
    month: PeriodValue = ALL

    def __post_init__(self):
        if self.month != ALL and not 0 <= self.month <= 11:
            raise ValueError(f"month must be 0-11 or 'all', got {self.month!r}")

    def matches(self, due_date: date | None) -> bool:
        due = as_date(due_date)
        if due is None:
            return False
        year_match = self.year == ALL or due.year == self.year
        month_match = self.month == ALL or due.month - 1 == self.month
        return year_match and month_match

    def label(self) -> str:
        return period_label(self)


def period_label(period: PeriodFilter) -> str:
    """Spanish description of the period, as shown next to rollup counts."""
    if period.year == ALL and period.month == ALL:
        return "en total"
    if period.month == ALL:
        return f"en {period.year}"
    month_name = MONTH_NAMES[period.month]
    if period.year == ALL:
        return f"en {month_name} (todos los años)"
    return f"en {month_name} {period.year}"


def _zero_semaphore() -> dict[SemaphoreStatus, int]:
    return {status: 0 for status in SemaphoreStatus}


def _zero_lifecycle() -> dict[ActivityStatus, int]:
    return {status: 0 for status in ActivityStatus}


def _percent(count: int, total: int) -> float:
    return count / total * 100 if total > 0 else 0.0


@dataclass(frozen=True)
class StatusRollup:
    """Counts, percentages and average progress for a set of activities."""
    id: str | None
    name: str
    group: str | None
    total_activities: int = 0
    stats: dict[SemaphoreStatus, int] = field(default_factory=_zero_semaphore)
    activity_status_stats: dict[ActivityStatus, int] = field(default_factory=_zero_lifecycle)
    average_progress: float = 0.0

    @property
    def percentages(self) -> dict[SemaphoreStatus, float]:
        return {s: _percent(self.stats[s], self.total_activities) for s in SemaphoreStatus}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "total_activities": self.total_activities,
            "stats": {s.name: n for s, n in self.stats.items()},
            "percentages": {s.name: round(p, 2) for s, p in self.percentages.items()},
            "activity_status_stats": {s.name: n for s, n in self.activity_status_stats.items()},
            "average_progress": round(self.average_progress, 2),
        }


def filter_activities(activities: Iterable[Activity], period: PeriodFilter) -> list[Activity]:
    return [a for a in activities if period.matches(a.due_date)]


def rollup_activities(
    activities: Iterable[Activity],
    period: PeriodFilter,
    *,
    id: str | None = None,
    name: str = "",
    group: str | None = None,
) -> StatusRollup:
    """Roll up the activities that match ``period``."""
    selected = filter_activities(activities, period)
    stats = _zero_semaphore()
    lifecycle = _zero_lifecycle()
    progress_sum = 0
    for activity in selected:
        stats[activity.semaphore_status] += 1
        lifecycle[activity.activity_status] += 1
        progress_sum += activity.progress or 0
    total = len(selected)
    return StatusRollup(
        id=id,
        name=name,
        group=group,
        total_activities=total,
        stats=stats,
        activity_status_stats=lifecycle,
        average_progress=progress_sum / total if total > 0 else 0.0,
    )


def combine_rollups(rollups: Iterable[StatusRollup], *, id: str | None = None, name: str = "",
                    group: str | None = None) -> StatusRollup:
    """Sum rollups; average progress is weighted by each rollup's total."""
    stats = _zero_semaphore()
    lifecycle = _zero_lifecycle()
    total = 0
    weighted_progress = 0.0
    for rollup in rollups:
        total += rollup.total_activities
        weighted_progress += rollup.average_progress * rollup.total_activities
        for status, count in rollup.stats.items():
            stats[status] += count
        for status, count in rollup.activity_status_stats.items():
            lifecycle[status] += count
    return StatusRollup(
        id=id,
        name=name,
        group=group,
        total_activities=total,
        stats=stats,
        activity_status_stats=lifecycle,
        average_progress=weighted_progress / total if total > 0 else 0.0,
    )


def category_rollups(practice: Practice, period: PeriodFilter) -> list[StatusRollup]:
    return [
        rollup_activities(
            iter_activities(category), period,
            id=category.id, name=category.name, group=practice.group,
        )
        for category in practice.categories
    ]


def practice_rollups(practices: Iterable[Practice], period: PeriodFilter) -> list[StatusRollup]:
    return [
        rollup_activities(
            iter_activities(practice), period,
            id=practice.id, name=practice.name, group=practice.group,
        )
        for practice in practices
    ]


def group_rollups(
    rollups: list[StatusRollup],
    groups: Iterable[PracticeGroup] = ITIL_PRACTICE_GROUPS,
) -> list[StatusRollup]:
    """One rollup per configured group, in configuration order.

    Groups with no visible practices still appear, with zero totals.
    """
    return [
        combine_rollups(
            (r for r in rollups if r.group == group.name),
            name=group.name,
        )
        for group in groups
    ]


def available_years(practices: Iterable[Practice], current_year: int) -> list[int]:
    """Years offered by the period selector, newest first."""
    years = {current_year}
    for activity in iter_activities(tuple(practices)):
        due = as_date(activity.due_date)
        if due is not None:
            years.add(due.year)
    return sorted(years, reverse=True)
