"""
Visibility filter tests.

Tests cover:
  - visible_practices for VIEW_ALL_CATEGORIES roles and permission-scoped users
  - Category edit rights, responsible-user edits, closed-activity lockout
  - Reopen / clone / delete eligibility
"""

from datetime import date

from itil_tracker.models.auth import ADMIN_ROLE, USER_ROLE, Capability, Permission, Role, User
from itil_tracker.models.practice import Activity, ActivityStatus, Category, Practice, Subcategory
from itil_tracker.services.visibility import (
    AccessContext,
    can_edit_activity,
    can_edit_category,
    visible_practices,
)


def _make_user(*permissions, user_id="u-1"):
    return User(id=user_id, username="ana", full_name="Ana", email="ana@example.com",
                role_id=USER_ROLE.id, permissions=tuple(permissions))


def _make_tree():
    activity = Activity(id="a-1", name="A1", responsible="u-1")
    sc = Subcategory(id="sc-1", name="Sub", activities=(activity,))
    return (
        Practice(id="p-1", name="P1", group="Mejora continua", categories=(
            Category(id="c-1", name="C1", subcategories=(sc,)),
            Category(id="c-2", name="C2"),
        )),
        Practice(id="p-2", name="P2", group="Gestión general", categories=(
            Category(id="c-3", name="C3"),
        )),
    )


def _open(**kwargs):
    return Activity(id="a-1", name="A1", **kwargs)


def _closed(**kwargs):
    return Activity(id="a-1", name="A1", progress=100, activity_status=ActivityStatus.CLOSED,
                    completion_date=date(2024, 1, 1), **kwargs)


class TestVisiblePractices:
    def test_admin_sees_same_tree_object(self):
        practices = _make_tree()
        assert visible_practices(practices, _make_user(), ADMIN_ROLE) is practices

    def test_user_sees_only_permitted_categories(self):
        user = _make_user(Permission("c-2"))
        result = visible_practices(_make_tree(), user, USER_ROLE)
        assert [p.id for p in result] == ["p-1"]
        assert [c.id for c in result[0].categories] == ["c-2"]

    def test_practices_without_visible_categories_are_dropped(self):
        assert visible_practices(_make_tree(), _make_user(), USER_ROLE) == ()

    def test_fully_visible_practice_is_shared(self):
        practices = _make_tree()
        result = visible_practices(practices, _make_user(Permission("c-3")), USER_ROLE)
        assert result[0] is practices[1]

    def test_input_not_mutated(self):
        practices = _make_tree()
        visible_practices(practices, _make_user(Permission("c-1")), USER_ROLE)
        assert len(practices[0].categories) == 2

    def test_subcategories_not_filtered(self):
        result = visible_practices(_make_tree(), _make_user(Permission("c-1")), USER_ROLE)
        assert result[0].categories[0].subcategories[0].activities[0].id == "a-1"

    def test_every_returned_category_is_permitted(self):
        user = _make_user(Permission("c-1"), Permission("c-3", can_edit=True))
        result = visible_practices(_make_tree(), user, USER_ROLE)
        allowed = {p.category_id for p in user.permissions}
        assert {c.id for p in result for c in p.categories} <= allowed
        assert all(p.categories for p in result)


class TestEditRights:
    def test_admin_can_edit_any_category(self):
        assert can_edit_category(_make_user(), ADMIN_ROLE, "c-9")

    def test_view_permission_cannot_edit(self):
        assert not can_edit_category(_make_user(Permission("c-1")), USER_ROLE, "c-1")

    def test_edit_permission_can_edit(self):
        assert can_edit_category(_make_user(Permission("c-1", can_edit=True)), USER_ROLE, "c-1")

    def test_responsible_can_edit_own_open_activity(self):
        user = _make_user(Permission("c-1"))
        assert can_edit_activity(user, USER_ROLE, "c-1", _open(responsible="u-1"))

    def test_other_users_activity_needs_category_edit(self):
        user = _make_user(Permission("c-1"))
        assert not can_edit_activity(user, USER_ROLE, "c-1", _open(responsible="u-2"))

    def test_closed_activity_never_editable(self):
        assert not can_edit_activity(_make_user(), ADMIN_ROLE, "c-1", _closed())
        user = _make_user(Permission("c-1", can_edit=True))
        assert not can_edit_activity(user, USER_ROLE, "c-1", _closed(responsible="u-1"))


class TestActions:
    def test_admin_actions_on_open_activity(self):
        ctx = AccessContext(_make_user(), ADMIN_ROLE)
        assert ctx.activity_actions("c-1", _open()) == {
            "edit": True, "reopen": False, "clone": True, "delete": True,
        }

    def test_admin_actions_on_closed_activity(self):
        ctx = AccessContext(_make_user(), ADMIN_ROLE)
        assert ctx.activity_actions("c-1", _closed()) == {
            "edit": False, "reopen": True, "clone": False, "delete": False,
        }

    def test_user_cannot_reopen(self):
        ctx = AccessContext(_make_user(Permission("c-1", can_edit=True)), USER_ROLE)
        assert not ctx.can_reopen_activity(_closed())

    def test_clone_and_delete_are_independent_capabilities(self):
        role = Role(id="r", name="Clonador", capabilities=frozenset({Capability.CLONE_ACTIVITY}))
        ctx = AccessContext(_make_user(), role)
        assert ctx.can_clone_activity(_open())
        assert not ctx.can_delete_activity(_open())

    def test_reopen_requires_view_all_categories(self):
        role = Role(id="r", name="Supervisor", capabilities=frozenset({Capability.VIEW_ALL_CATEGORIES}))
        ctx = AccessContext(_make_user(), role)
        assert ctx.can_reopen_activity(_closed())
        assert ctx.is_administrator
