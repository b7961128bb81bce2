"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere. A service that raises has
not touched the store: every mutation is computed on a snapshot and only
committed after it succeeds.

Usage:
    from itil_tracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Activity", resource_id="a-1")
    raise ValidationError("Name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist in the snapshot.

    Also used for resources outside the caller's visible tree, so a hidden
    category is indistinguishable from a missing one.

    Args:
        resource: Human-readable entity name (e.g. "Activity", "Role").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation conflicts with the current state of a resource.

    Covers duplicates (username taken) and state conflicts (mutating a closed
    activity, deleting a role still in use). Maps to HTTP 409.

    Args:
        message: Human-readable reason.
        resource: Optional model name.
        resource_id: Optional id of the conflicting resource.
    """

    def __init__(self, message: str, resource: str | None = None, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message)


class PermissionDenied(Exception):
    """Raised when the acting user lacks the right to perform an action.

    Maps to HTTP 403.
    """

    def __init__(self, user_id: str | None, action: str, target: str | None = None) -> None:
        target_msg = f" on {target}" if target else ""
        super().__init__(f"User {user_id} does not have permission for '{action}'{target_msg}")
        self.user_id = user_id
        self.action = action
        self.target = target


class AuthenticationError(Exception):
    """Raised when a login attempt fails.

    The message is safe to show to the user. Maps to HTTP 401.
    """
