"""
Deterministic demo data.

Builds one category-to-activity tree per ITIL practice with activities due
within ±30 days of ``today``, three users (admin / jdoe / msmith), the two
default roles and three access requests. The same ``seed`` and ``today``
always produce the same state.

Ids follow a fixed pattern so permissions can reference them:
    practice     p{group}-{practice}
    category     p{group}-{practice}-{category}
    subcategory  sc-{category_id}-{index}
    activity     a-{subcategory_id}-{index}

Usage:
    state = seed_demo_state(date.today(), seed=42)
"""

import logging
import random
from datetime import date, datetime, time, timedelta, timezone

from itil_tracker.models.auth import (
    ADMIN_ROLE,
    DEFAULT_ROLES,
    USER_ROLE,
    AccessRequest,
    AccessRequestStatus,
    AuthType,
    Permission,
    User,
)
from itil_tracker.models.integrations import LdapConfig, SharePointConfig
from itil_tracker.models.practice import (
    ITIL_PRACTICE_GROUPS,
    Activity,
    Category,
    Document,
    Practice,
    Subcategory,
)
from itil_tracker.services.document_versioning import build_document_url, generate_file_name
from itil_tracker.services.status_engine import apply_derived_status
from itil_tracker.store import TrackerState
from itil_tracker.utils.crypto import hash_password

logger = logging.getLogger(__name__)

EVIDENCE_FILE = "evidencia.pdf"


def demo_users() -> tuple[User, ...]:
    return (
        User(
            id="u1",
            username="admin",
            full_name="Administrador del Sistema",
            email="admin@example.com",
            role_id=ADMIN_ROLE.id,
            auth_type=AuthType.LOCAL,
            password_hash=hash_password("admin"),
        ),
        User(
            id="u2",
            username="jdoe",
            full_name="John Doe",
            email="jdoe@example.com",
            role_id=USER_ROLE.id,
            auth_type=AuthType.DIRECTORY,
            permissions=(
                Permission("p0-0-0", can_edit=True),
                Permission("p1-0-0", can_edit=False),
            ),
        ),
        User(
            id="u3",
            username="msmith",
            full_name="Mary Smith",
            email="msmith@example.com",
            role_id=USER_ROLE.id,
            auth_type=AuthType.LOCAL,
            password_hash=hash_password("password123"),
            permissions=(Permission("p2-0-0", can_edit=True),),
        ),
    )


def demo_access_requests() -> tuple[AccessRequest, ...]:
    return (
        AccessRequest("req1", "u2", "p2-0-0",
                      datetime(2023, 10, 25, 10, 0, tzinfo=timezone.utc), AccessRequestStatus.PENDING),
        AccessRequest("req2", "u3", "p1-0-0",
                      datetime(2023, 10, 24, 14, 30, tzinfo=timezone.utc), AccessRequestStatus.APPROVED),
        AccessRequest("req3", "u2", "p0-1-0",
                      datetime(2023, 10, 22, 9, 0, tzinfo=timezone.utc), AccessRequestStatus.REJECTED),
    )


def _evidence(activity_id: str, activity_name: str, completed: date, max_len: int) -> Document:
    name = generate_file_name(activity_id, activity_name, 1, "pdf", max_len)
    return Document(
        id=f"doc-{activity_id}-1",
        name=name,
        original_name=EVIDENCE_FILE,
        url=build_document_url(None, None, name),
        version=1,
        upload_date=datetime.combine(completed, time(9, 0), tzinfo=timezone.utc),
    )


def _activities(rng: random.Random, subcategory_id: str, today: date, max_len: int) -> tuple[Activity, ...]:
    result = []
    for i in range(1, rng.randint(1, 5) + 1):
        activity_id = f"a-{subcategory_id}-{i}"
        name = f"Actividad {i}"
        due = today + timedelta(days=rng.randint(-30, 30))
        completed = due + timedelta(days=rng.randint(-5, 5)) if rng.random() > 0.3 else None
        documents = (_evidence(activity_id, name, completed, max_len),) if completed else ()
        activity = Activity(
            id=activity_id,
            name=name,
            description=f"Descripción de la actividad {i}.",
            responsible=("u2", "u3")[i % 2],
            due_date=due,
            completion_date=completed,
            progress=100 if completed else rng.randint(0, 99),
            documents=documents,
        )
        result.append(apply_derived_status(activity, today))
    return tuple(result)


def demo_practices(today: date, seed: int = 42, max_file_name_length: int = 128) -> tuple[Practice, ...]:
    rng = random.Random(seed)
    practices = []
    for g, group in enumerate(ITIL_PRACTICE_GROUPS):
        for p, practice_name in enumerate(group.practices):
            practice_id = f"p{g}-{p}"
            categories = []
            for c in range(rng.randint(1, 2)):
                category_id = f"{practice_id}-{c}"
                subcategories = tuple(
                    Subcategory(
                        id=f"sc-{category_id}-{s}",
                        name=f"Subcategoría {s + 1}",
                        activities=_activities(rng, f"sc-{category_id}-{s}", today, max_file_name_length),
                    )
                    for s in range(rng.randint(1, 3))
                )
                categories.append(Category(id=category_id, name=f"Categoría {c + 1}", subcategories=subcategories))
            practices.append(Practice(id=practice_id, name=practice_name, group=group.name,
                                      categories=tuple(categories)))
    return tuple(practices)


def seed_demo_state(today: date, seed: int = 42, max_file_name_length: int = 128) -> TrackerState:
    practices = demo_practices(today, seed, max_file_name_length)
    logger.info("Seeded demo state: %d practices (seed=%d, today=%s)", len(practices), seed, today)
    return TrackerState(
        practices=practices,
        users=demo_users(),
        roles=DEFAULT_ROLES,
        ldap_config=LdapConfig(),
        sharepoint_config=SharePointConfig(max_file_name_length=max_file_name_length),
        access_requests=demo_access_requests(),
    )
