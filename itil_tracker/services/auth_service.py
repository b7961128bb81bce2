"""
Authentication Service — username/password login.

LOCAL accounts are verified against their bcrypt hash. DIRECTORY accounts
are accepted only while the LDAP integration is enabled; the directory bind
itself is simulated (any non-empty password succeeds).

Unknown users and wrong passwords produce the same message so the login form
does not reveal which usernames exist.
"""

import logging

from itil_tracker.core.exceptions import AuthenticationError
from itil_tracker.models.auth import AuthType, User
from itil_tracker.models.integrations import LdapConfig
from itil_tracker.services.user_service import find_by_username
from itil_tracker.utils.crypto import verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Usuario o contraseña incorrectos."
DIRECTORY_DISABLED = "La autenticación por Directorio Activo está deshabilitada."
DIRECTORY_PASSWORD_REQUIRED = "Se requiere contraseña para la autenticación de Directorio Activo."


def authenticate(users: tuple[User, ...], ldap_config: LdapConfig, username: str, password: str) -> User:
    """Return the matching user or raise AuthenticationError."""
    user = find_by_username(users, username)
    if user is None:
        logger.warning("Login failed: unknown username %r", username)
        raise AuthenticationError(INVALID_CREDENTIALS)

    if user.auth_type == AuthType.LOCAL:
        if not verify_password(password or "", user.password_hash):
            logger.warning("Login failed: bad password for %s", user.id)
            raise AuthenticationError(INVALID_CREDENTIALS)
        logger.info("User %s logged in (local)", user.id)
        return user

    if not ldap_config.enabled:
        logger.warning("Directory login for %s rejected: LDAP disabled", user.id)
        raise AuthenticationError(DIRECTORY_DISABLED)
    if not password:
        raise AuthenticationError(DIRECTORY_PASSWORD_REQUIRED)
    logger.info("Simulated directory bind for %s against %s", user.username, ldap_config.server_url)
    return user
