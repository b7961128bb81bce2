"""
Practice tree helpers — lookup and path-indexed replace-on-write.

The tree is a tuple of frozen ``Practice`` nodes. Updates take an
``ActivityPath`` and rebuild only the nodes on that path; every sibling that
is not on the path is reused by identity, so two snapshots share all
untouched subtrees.

Usage:
    from itil_tracker.services.tree import replace_activity, get_activity

    activity = get_activity(practices, path)
    practices = replace_activity(practices, path, new_activity)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace

from itil_tracker.core.exceptions import NotFoundError
from itil_tracker.models.practice import (
    Activity,
    ActivityPath,
    Category,
    Practice,
    Subcategory,
)

Practices = tuple[Practice, ...]


@dataclass(frozen=True)
class LocatedActivity:
    """An activity with the tree context it was found in."""
    practice: Practice
    category: Category
    subcategory: Subcategory
    activity: Activity

    @property
    def path(self) -> ActivityPath:
        return ActivityPath(self.practice.id, self.category.id, self.subcategory.id, self.activity.id)


# ═════════════════════════════════════════════════════════════════════════════
# Traversal
# ═════════════════════════════════════════════════════════════════════════════

def iter_located_activities(practices: Practices) -> Iterator[LocatedActivity]:
    for practice in practices:
        for category in practice.categories:
            for subcategory in category.subcategories:
                for activity in subcategory.activities:
                    yield LocatedActivity(practice, category, subcategory, activity)


def iter_activities(node) -> Iterator[Activity]:
    """Yield every activity under a practice tree, practice, category or subcategory."""
    if isinstance(node, Subcategory):
        yield from node.activities
    elif isinstance(node, Category):
        for subcategory in node.subcategories:
            yield from subcategory.activities
    elif isinstance(node, Practice):
        for category in node.categories:
            yield from iter_activities(category)
    else:
        for practice in node:
            yield from iter_activities(practice)


def all_category_ids(practices: Practices) -> set[str]:
    return {c.id for p in practices for c in p.categories}


# ═════════════════════════════════════════════════════════════════════════════
# Lookup
# ═════════════════════════════════════════════════════════════════════════════

def find_practice(practices: Practices, practice_id: str) -> Practice:
    for practice in practices:
        if practice.id == practice_id:
            return practice
    raise NotFoundError("Practice", practice_id)


def find_category(practices: Practices, category_id: str) -> tuple[Practice, Category]:
    for practice in practices:
        for category in practice.categories:
            if category.id == category_id:
                return practice, category
    raise NotFoundError("Category", category_id)


def find_subcategory(practices: Practices, subcategory_id: str) -> ActivityPath:
    """Return the path (without activity) of a subcategory located by id."""
    for practice in practices:
        for category in practice.categories:
            for subcategory in category.subcategories:
                if subcategory.id == subcategory_id:
                    return ActivityPath(practice.id, category.id, subcategory.id)
    raise NotFoundError("Subcategory", subcategory_id)


def locate_activity(practices: Practices, activity_id: str) -> LocatedActivity:
    for located in iter_located_activities(practices):
        if located.activity.id == activity_id:
            return located
    raise NotFoundError("Activity", activity_id)


def get_subcategory(practices: Practices, path: ActivityPath) -> Subcategory:
    practice = find_practice(practices, path.practice_id)
    category = _child(practice.categories, path.category_id, "Category")
    return _child(category.subcategories, path.subcategory_id, "Subcategory")


def get_activity(practices: Practices, path: ActivityPath) -> Activity:
    subcategory = get_subcategory(practices, path)
    return _child(subcategory.activities, path.activity_id, "Activity")


def _child(nodes, node_id, label):
    for node in nodes:
        if node.id == node_id:
            return node
    raise NotFoundError(label, node_id)


# ═════════════════════════════════════════════════════════════════════════════
# Replace-on-write
# ═════════════════════════════════════════════════════════════════════════════

def _replace_child(nodes: tuple, node_id: str, fn: Callable, label: str) -> tuple:
    for index, node in enumerate(nodes):
        if node.id == node_id:
            return nodes[:index] + (fn(node),) + nodes[index + 1:]
    raise NotFoundError(label, node_id)


def update_practice(practices: Practices, practice_id: str, fn: Callable[[Practice], Practice]) -> Practices:
    return _replace_child(practices, practice_id, fn, "Practice")


def update_category(
    practices: Practices,
    practice_id: str,
    category_id: str,
    fn: Callable[[Category], Category],
) -> Practices:
    return update_practice(
        practices,
        practice_id,
        lambda p: replace(p, categories=_replace_child(p.categories, category_id, fn, "Category")),
    )


def update_subcategory(
    practices: Practices,
    path: ActivityPath,
    fn: Callable[[Subcategory], Subcategory],
) -> Practices:
    return update_category(
        practices,
        path.practice_id,
        path.category_id,
        lambda c: replace(
            c,
            subcategories=_replace_child(c.subcategories, path.subcategory_id, fn, "Subcategory"),
        ),
    )


def replace_activity(practices: Practices, path: ActivityPath, activity: Activity) -> Practices:
    return update_subcategory(
        practices,
        path,
        lambda sc: replace(
            sc,
            activities=_replace_child(sc.activities, path.activity_id, lambda _old: activity, "Activity"),
        ),
    )


def insert_activity(practices: Practices, path: ActivityPath, activity: Activity) -> Practices:
    """Append ``activity`` to the subcategory addressed by ``path``."""
    return update_subcategory(
        practices,
        path,
        lambda sc: replace(sc, activities=sc.activities + (activity,)),
    )


def remove_activity(practices: Practices, path: ActivityPath) -> Practices:
    def _drop(sc: Subcategory) -> Subcategory:
        kept = tuple(a for a in sc.activities if a.id != path.activity_id)
        if len(kept) == len(sc.activities):
            raise NotFoundError("Activity", path.activity_id)
        return replace(sc, activities=kept)

    return update_subcategory(practices, path, _drop)
