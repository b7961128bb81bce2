"""
ITIL Governance Tracker
Snapshot models.

All models are frozen dataclasses; there is no ORM. The application state is
held by ``itil_tracker.store.TrackerStore``.
"""

from itil_tracker.models.auth import (  # noqa: F401
    AccessRequest,
    AccessRequestStatus,
    AuthType,
    Capability,
    Permission,
    Role,
    User,
)
from itil_tracker.models.integrations import LdapConfig, SharePointConfig  # noqa: F401
from itil_tracker.models.practice import (  # noqa: F401
    ITIL_PRACTICE_GROUPS,
    Activity,
    ActivityPath,
    ActivityStatus,
    Category,
    Document,
    Practice,
    PracticeGroup,
    SemaphoreStatus,
    Subcategory,
)
