"""
In-process state store.

The store owns one immutable ``TrackerState`` snapshot. Readers take the
current snapshot and work on it without locking; writers compute a new
snapshot with the service layer and ``commit`` the changed fields. Commits
are serialized by a lock (single-writer); there is no persistence.

Usage:
    store = get_store()                      # from a request (blueprints)
    state = store.snapshot()
    practices, activity = activity_service.save_activity(state.practices, ...)
    store.commit(practices=practices)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace

from itil_tracker.models.auth import DEFAULT_ROLES, AccessRequest, Role, User
from itil_tracker.models.integrations import LdapConfig, SharePointConfig
from itil_tracker.models.practice import Practice

logger = logging.getLogger(__name__)

EXTENSION_KEY = "tracker_store"


@dataclass(frozen=True)
class TrackerState:
    practices: tuple[Practice, ...] = ()
    users: tuple[User, ...] = ()
    roles: tuple[Role, ...] = DEFAULT_ROLES
    ldap_config: LdapConfig = LdapConfig()
    sharepoint_config: SharePointConfig = SharePointConfig()
    access_requests: tuple[AccessRequest, ...] = ()


class TrackerStore:
    """Holds the current snapshot and replaces it atomically."""

    def __init__(self, state: TrackerState | None = None):
        self._state = state or TrackerState()
        self._lock = threading.RLock()
        self._version = 0

    @property
    def version(self) -> int:
        """Number of commits so far."""
        return self._version

    def snapshot(self) -> TrackerState:
        return self._state

    def commit(self, **changes) -> TrackerState:
        """Replace the named fields of the current state and return the new state."""
        unknown = set(changes) - {f.name for f in fields(TrackerState)}
        if unknown:
            raise TypeError(f"Unknown state fields: {sorted(unknown)}")
        with self._lock:
            self._state = replace(self._state, **changes)
            self._version += 1
            logger.debug("Committed state v%d (%s)", self._version, ", ".join(sorted(changes)))
            return self._state

    @contextmanager
    def transaction(self):
        """Hold the write lock across read-compute-commit.

        Yields the snapshot to compute from; ``commit`` inside the block
        reuses the same (re-entrant) lock.
        """
        with self._lock:
            yield self._state

    def reset(self, state: TrackerState) -> None:
        with self._lock:
            self._state = state
            self._version += 1
