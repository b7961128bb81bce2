"""
Demo seed and state store tests.
"""

from datetime import date, timedelta

import pytest

from itil_tracker.models.practice import ITIL_PRACTICE_GROUPS, ActivityStatus
from itil_tracker.seed import demo_practices, seed_demo_state
from itil_tracker.services.status_engine import derive_activity_status, derive_semaphore_status
from itil_tracker.services.tree import iter_activities, iter_located_activities
from itil_tracker.store import TrackerState, TrackerStore

TODAY = date(2024, 1, 15)


class TestSeed:
    def test_deterministic(self):
        assert demo_practices(TODAY, seed=3) == demo_practices(TODAY, seed=3)

    def test_one_practice_per_taxonomy_entry(self):
        practices = demo_practices(TODAY)
        expected = sum(len(g.practices) for g in ITIL_PRACTICE_GROUPS)
        assert len(practices) == expected
        assert {p.group for p in practices} == {g.name for g in ITIL_PRACTICE_GROUPS}

    def test_derived_statuses_are_consistent(self):
        for activity in iter_activities(demo_practices(TODAY)):
            assert activity.activity_status == derive_activity_status(activity.progress)
            assert activity.semaphore_status == derive_semaphore_status(
                activity.due_date, activity.completion_date, TODAY,
            )

    def test_closed_activities_have_evidence(self):
        for activity in iter_activities(demo_practices(TODAY)):
            if activity.activity_status == ActivityStatus.CLOSED:
                assert activity.documents
                assert activity.completion_date is not None

    def test_due_dates_within_30_days(self):
        for activity in iter_activities(demo_practices(TODAY)):
            assert abs(activity.due_date - TODAY) <= timedelta(days=30)

    def test_evidence_names_fit_configured_length(self):
        for activity in iter_activities(demo_practices(TODAY, max_file_name_length=20)):
            for document in activity.documents:
                assert len(document.name) <= 20

    def test_fixed_ids_for_permissions(self):
        practices = demo_practices(TODAY)
        category_ids = {c.id for p in practices for c in p.categories}
        assert {"p0-0-0", "p1-0-0", "p2-0-0"} <= category_ids
        ids = {loc.activity.id for loc in iter_located_activities(practices)}
        assert "a-sc-p2-0-0-0-1" in ids

    def test_state_contents(self):
        state = seed_demo_state(TODAY, seed=1)
        assert [u.username for u in state.users] == ["admin", "jdoe", "msmith"]
        assert len(state.access_requests) == 3
        assert state.sharepoint_config.max_file_name_length == 128


class TestStore:
    def test_commit_replaces_fields(self):
        store = TrackerStore(TrackerState())
        before = store.snapshot()
        after = store.commit(practices=demo_practices(TODAY))
        assert store.snapshot() is after
        assert before.practices == ()
        assert after.users == before.users
        assert store.version == 1

    def test_unknown_field(self):
        with pytest.raises(TypeError):
            TrackerStore().commit(widgets=())

    def test_transaction_yields_snapshot(self):
        store = TrackerStore(TrackerState())
        with store.transaction() as state:
            store.commit(users=state.users)
        assert store.version == 1

    def test_reset(self):
        store = TrackerStore()
        store.reset(seed_demo_state(TODAY))
        assert store.snapshot().practices
        assert store.version == 1


class TestAppState:
    def test_app_starts_with_seeded_state(self, app, store):
        expected = demo_practices(
            date.today(),
            seed=app.config["DEMO_SEED"],
            max_file_name_length=app.config["DEFAULT_MAX_FILE_NAME_LENGTH"],
        )
        assert store.version == 0
        assert store.snapshot().practices == expected

    def test_no_out_of_process_reseed_command(self, app):
        assert "reseed" not in app.cli.commands
