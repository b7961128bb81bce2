"""
Users, roles, category permissions and access requests.

A Role is a named bundle of capabilities. The capability set is a frozenset of
``Capability`` members with named predicates on ``Role`` so callers never
test raw flags.

Usage:
    from itil_tracker.models.auth import Capability, Role

    role = Role(id="r", name="Auditor", capabilities=frozenset({Capability.VIEW_DASHBOARD}))
    role.can(Capability.VIEW_DASHBOARD)   # True
    role.can_view_all_categories          # False
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AuthType(str, Enum):
    LOCAL = "Local"
    DIRECTORY = "Directorio Activo"


class Capability(str, Enum):
    """Named role capabilities."""
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_PRACTICES = "view_practices"
    VIEW_USERS = "view_users"
    VIEW_AUTH_SETTINGS = "view_auth_settings"
    VIEW_ROLE_MANAGEMENT = "view_role_management"
    VIEW_ALL_CATEGORIES = "view_all_categories"
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_AUTH_SETTINGS = "manage_auth_settings"
    MANAGE_STORAGE_SETTINGS = "manage_storage_settings"
    DELETE_ACTIVITY = "delete_activity"
    CLONE_ACTIVITY = "clone_activity"


CAPABILITY_LABELS: dict[Capability, str] = {
    Capability.VIEW_DASHBOARD: "Ver Panel de Control",
    Capability.VIEW_PRACTICES: "Ver Explorador de Prácticas",
    Capability.VIEW_USERS: "Ver Gestión de Usuarios",
    Capability.VIEW_AUTH_SETTINGS: "Ver Config. de Autenticación",
    Capability.VIEW_ROLE_MANAGEMENT: "Ver Gestión de Roles",
    Capability.VIEW_ALL_CATEGORIES: "Ver Todas las Categorías (ignora permisos)",
    Capability.MANAGE_USERS: "Gestionar Usuarios (Crear/Editar/Eliminar)",
    Capability.MANAGE_ROLES: "Gestionar Roles (Crear/Editar/Eliminar)",
    Capability.MANAGE_AUTH_SETTINGS: "Gestionar Config. de Autenticación",
    Capability.MANAGE_STORAGE_SETTINGS: "Gestionar Config. de Almacenamiento",
    Capability.DELETE_ACTIVITY: "Eliminar Actividades",
    Capability.CLONE_ACTIVITY: "Clonar Actividades",
}

# Capabilities a newly created role starts with.
BASELINE_CAPABILITIES = frozenset({Capability.VIEW_DASHBOARD, Capability.VIEW_PRACTICES})


def parse_capabilities(values) -> frozenset[Capability]:
    """Convert an iterable of capability names into a capability set.

    Raises ValueError on unknown names.
    """
    result = set()
    for raw in values or ():
        try:
            result.add(Capability(raw))
        except ValueError:
            raise ValueError(f"Unknown capability: {raw}") from None
    return frozenset(result)


@dataclass(frozen=True)
class Role:
    id: str
    name: str
    description: str = ""
    is_default: bool = False
    capabilities: frozenset[Capability] = field(default_factory=frozenset)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def can_view_all_categories(self) -> bool:
        return self.can(Capability.VIEW_ALL_CATEGORIES)

    @property
    def can_clone_activity(self) -> bool:
        return self.can(Capability.CLONE_ACTIVITY)

    @property
    def can_delete_activity(self) -> bool:
        return self.can(Capability.DELETE_ACTIVITY)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_default": self.is_default,
            "capabilities": sorted(c.value for c in self.capabilities),
        }


ADMIN_ROLE = Role(
    id="role-admin",
    name="ADMIN",
    description="Administrador con acceso total",
    is_default=True,
    capabilities=frozenset(Capability),
)

USER_ROLE = Role(
    id="role-user",
    name="USER",
    description="Usuario con acceso a las categorías asignadas",
    is_default=True,
    capabilities=BASELINE_CAPABILITIES,
)

DEFAULT_ROLES: tuple[Role, ...] = (ADMIN_ROLE, USER_ROLE)


@dataclass(frozen=True)
class Permission:
    """Per-user grant on one category; ``can_edit=False`` means view-only."""
    category_id: str
    can_edit: bool = False

    def to_dict(self) -> dict:
        return {"category_id": self.category_id, "can_edit": self.can_edit}


@dataclass(frozen=True)
class User:
    id: str
    username: str
    full_name: str
    email: str
    role_id: str
    auth_type: AuthType = AuthType.LOCAL
    permissions: tuple[Permission, ...] = ()
    password_hash: str | None = None

    def permission_for(self, category_id: str) -> Permission | None:
        for perm in self.permissions:
            if perm.category_id == category_id:
                return perm
        return None

    def to_dict(self) -> dict:
        # password_hash never leaves the service layer
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "role_id": self.role_id,
            "auth_type": self.auth_type.value,
            "permissions": [p.to_dict() for p in self.permissions],
        }


class AccessRequestStatus(str, Enum):
    PENDING = "Pendiente"
    APPROVED = "Aprobado"
    REJECTED = "Rechazado"


@dataclass(frozen=True)
class AccessRequest:
    id: str
    user_id: str
    category_id: str
    request_date: datetime
    status: AccessRequestStatus = AccessRequestStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "category_id": self.category_id,
            "request_date": self.request_date.isoformat(),
            "status": self.status.value,
        }
