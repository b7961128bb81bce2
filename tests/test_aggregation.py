"""
Aggregation engine tests.

Tests cover:
  - Period filter matching (0-based months, "all", missing due dates)
  - Per-practice counts, percentages, lifecycle counts and average progress
  - Group rollups equal the sum of their practices
  - Period labels and available years
"""

from datetime import date

import pytest

from itil_tracker.models.practice import (
    ITIL_PRACTICE_GROUPS,
    Activity,
    ActivityStatus,
    Category,
    Practice,
    SemaphoreStatus,
    Subcategory,
)
from itil_tracker.services.aggregation import (
    ALL,
    PeriodFilter,
    available_years,
    category_rollups,
    group_rollups,
    period_label,
    practice_rollups,
)
from itil_tracker.services.status_engine import apply_derived_status

TODAY = date(2024, 1, 15)
GROUP_A = ITIL_PRACTICE_GROUPS[0].name
GROUP_B = ITIL_PRACTICE_GROUPS[1].name


def _make_activity(aid, due=None, completed=None, progress=0):
    if completed is not None:
        progress = 100
    return apply_derived_status(
        Activity(id=aid, name=aid, due_date=due, completion_date=completed, progress=progress), TODAY
    )


def _make_practice(pid, group, *activities, categories=1):
    cats = tuple(
        Category(id=f"{pid}-c{i}", name=f"C{i}", subcategories=(
            Subcategory(id=f"{pid}-sc{i}", name="S", activities=activities if i == 0 else ()),
        ))
        for i in range(categories)
    )
    return Practice(id=pid, name=pid, group=group, categories=cats)


def _make_tree():
    return (
        _make_practice(
            "p-1", GROUP_A,
            _make_activity("a1", due=date(2024, 1, 10)),                                # RED, open
            _make_activity("a2", due=date(2024, 1, 20), progress=50),                   # ORANGE, open
            _make_activity("a3", due=date(2024, 1, 5), completed=date(2024, 1, 4)),     # GREEN, closed
            _make_activity("a4"),                                                       # GRAY, no due
        ),
        _make_practice(
            "p-2", GROUP_A,
            _make_activity("b1", due=date(2024, 2, 1), completed=date(2024, 2, 3)),     # RED, closed
            _make_activity("b2", due=date(2023, 12, 31), progress=20),                  # RED, open
        ),
        _make_practice(
            "p-3", GROUP_B,
            _make_activity("c1", due=date(2024, 1, 25), progress=10),
        ),
    )


class TestPeriodFilter:
    def test_all_matches_any_due_date(self):
        assert PeriodFilter().matches(date(1999, 5, 5))

    def test_no_due_date_never_matches(self):
        assert not PeriodFilter().matches(None)

    def test_months_are_zero_based(self):
        assert PeriodFilter(year=2024, month=0).matches(date(2024, 1, 31))
        assert not PeriodFilter(year=2024, month=1).matches(date(2024, 1, 31))

    def test_month_all_years(self):
        assert PeriodFilter(month=11).matches(date(2023, 12, 31))

    def test_invalid_month_rejected(self):
        with pytest.raises(ValueError):
            PeriodFilter(month=12)


class TestPracticeRollups:
    def test_counts_exclude_missing_due_dates(self):
        rollups = practice_rollups(_make_tree(), PeriodFilter())
        assert rollups[0].total_activities == 3
        assert rollups[0].stats[SemaphoreStatus.GRAY] == 0

    def test_status_counts_sum_to_total(self):
        for period in (PeriodFilter(), PeriodFilter(year=2024), PeriodFilter(year=2024, month=0)):
            for rollup in practice_rollups(_make_tree(), period):
                assert sum(rollup.stats.values()) == rollup.total_activities
                assert sum(rollup.activity_status_stats.values()) == rollup.total_activities

    def test_percentages(self):
        rollup = practice_rollups(_make_tree(), PeriodFilter())[0]
        assert rollup.percentages[SemaphoreStatus.RED] == pytest.approx(100 / 3)
        assert rollup.percentages[SemaphoreStatus.GRAY] == 0

    def test_average_progress(self):
        rollup = practice_rollups(_make_tree(), PeriodFilter())[0]
        assert rollup.average_progress == pytest.approx((0 + 50 + 100) / 3)

    def test_lifecycle_counts(self):
        rollup = practice_rollups(_make_tree(), PeriodFilter())[1]
        assert rollup.activity_status_stats[ActivityStatus.CLOSED] == 1
        assert rollup.activity_status_stats[ActivityStatus.OPEN] == 1

    def test_period_filter_applies(self):
        rollups = practice_rollups(_make_tree(), PeriodFilter(year=2024, month=0))
        assert [r.total_activities for r in rollups] == [3, 0, 1]

    def test_empty_rollup_is_zero(self):
        rollup = practice_rollups(_make_tree(), PeriodFilter(year=2030))[0]
        assert rollup.total_activities == 0
        assert rollup.average_progress == 0
        assert all(p == 0 for p in rollup.percentages.values())

    def test_to_dict_uses_status_names(self):
        data = practice_rollups(_make_tree(), PeriodFilter())[0].to_dict()
        assert set(data["stats"]) == {"GREEN", "ORANGE", "RED", "GRAY"}
        assert set(data["activity_status_stats"]) == {"OPEN", "CLOSED"}


class TestCategoryRollups:
    def test_one_rollup_per_category(self):
        practice = _make_practice("p-x", GROUP_A, _make_activity("x", due=date(2024, 1, 1)), categories=2)
        rollups = category_rollups(practice, PeriodFilter())
        assert [r.total_activities for r in rollups] == [1, 0]


class TestGroupRollups:
    @pytest.mark.parametrize("period", [
        PeriodFilter(),
        PeriodFilter(year=2024),
        PeriodFilter(year=2024, month=0),
        PeriodFilter(year=ALL, month=11),
    ])
    def test_group_totals_equal_sum_of_practices(self, period):
        by_practice = practice_rollups(_make_tree(), period)
        by_group = group_rollups(by_practice)
        for group in by_group:
            members = [r for r in by_practice if r.group == group.name]
            assert group.total_activities == sum(r.total_activities for r in members)
            assert sum(group.stats.values()) == group.total_activities
            for status in SemaphoreStatus:
                assert group.stats[status] == sum(r.stats[status] for r in members)

    def test_average_progress_is_weighted(self):
        by_group = group_rollups(practice_rollups(_make_tree(), PeriodFilter()))
        # p-1: 0, 50, 100; p-2: 100, 20
        assert by_group[0].average_progress == pytest.approx(270 / 5)

    def test_every_group_present_in_order(self):
        by_group = group_rollups(practice_rollups(_make_tree(), PeriodFilter()))
        assert [g.name for g in by_group] == [g.name for g in ITIL_PRACTICE_GROUPS]
        assert by_group[-1].total_activities == 0


class TestLabelsAndYears:
    def test_period_labels(self):
        assert period_label(PeriodFilter()) == "en total"
        assert period_label(PeriodFilter(year=2024)) == "en 2024"
        assert period_label(PeriodFilter(year=2024, month=0)) == "en Enero 2024"
        assert period_label(PeriodFilter(month=2)) == "en Marzo (todos los años)"

    def test_available_years_newest_first(self):
        assert available_years(_make_tree(), 2025) == [2025, 2024, 2023]
