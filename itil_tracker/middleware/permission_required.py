"""
Capability Decorators — role-based route protection.

Provides decorators that check the authenticated user's role capabilities
before allowing access to an endpoint. They run after the JWT middleware,
so a user is always present on /api/v1 routes.

Usage:
    @users_bp.route("/users", methods=["POST"])
    @require_capability(Capability.MANAGE_USERS)
    def create_user():
        ...

    @settings_bp.route("/settings/ldap", methods=["GET"])
    @require_any_capability(Capability.VIEW_AUTH_SETTINGS, Capability.MANAGE_AUTH_SETTINGS)
    def get_ldap():
        ...
"""

import functools
import logging

from itil_tracker.blueprints import current_access
from itil_tracker.models.auth import Capability
from itil_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def require_capability(capability: Capability):
    """Decorator: require the user's role to grant ``capability``."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            ctx = current_access()
            if not ctx.can(capability):
                logger.warning(
                    "User %s denied: missing capability '%s' on %s",
                    ctx.user_id, capability.value, f.__name__,
                )
                return api_error(
                    E.FORBIDDEN, "Permission denied", details={"required": capability.value}
                )
            return f(*args, **kwargs)
        return decorated
    return decorator


def require_any_capability(*capabilities: Capability):
    """Decorator: require at least ONE of the listed capabilities."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            ctx = current_access()
            if not any(ctx.can(c) for c in capabilities):
                logger.warning(
                    "User %s denied: missing any of %s on %s",
                    ctx.user_id, [c.value for c in capabilities], f.__name__,
                )
                return api_error(
                    E.FORBIDDEN,
                    "Permission denied",
                    details={"required_any": [c.value for c in capabilities]},
                )
            return f(*args, **kwargs)
        return decorated
    return decorator
