"""
Practice tree — immutable snapshot types.

Practice → Category → Subcategory → Activity → Document.

Every node is a frozen dataclass and every child sequence is a tuple, so a
mutation produces a new tree in which only the nodes on the changed path are
new objects; untouched siblings are shared with the previous snapshot.

Usage:
    from itil_tracker.models.practice import Activity, SemaphoreStatus

    act = Activity(id="a-1", name="Revisión", due_date=date(2024, 1, 10))
    act.to_dict()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class SemaphoreStatus(str, Enum):
    """Traffic-light status derived from due/completion dates."""
    GREEN = "Verde"
    ORANGE = "Naranja"
    RED = "Rojo"
    GRAY = "Gris"


class ActivityStatus(str, Enum):
    """Lifecycle status derived from progress."""
    OPEN = "Abierta"
    CLOSED = "Cerrada"


# ═════════════════════════════════════════════════════════════════════════════
# ITIL practice taxonomy
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PracticeGroup:
    name: str
    practices: tuple[str, ...]


ITIL_PRACTICE_GROUPS: tuple[PracticeGroup, ...] = (
    PracticeGroup(
        name="Mejora continua",
        practices=(
            "Mejora continua",
            "Medición y reporte",
            "Gestión del conocimiento",
        ),
    ),
    PracticeGroup(
        name="Gestión general",
        practices=(
            "Gestión de la arquitectura",
            "Gestión de la seguridad de la información",
            "Gestión de riesgos",
            "Gestión de proveedores",
        ),
    ),
    PracticeGroup(
        name="Diseño y transición",
        practices=(
            "Habilitación de cambios",
            "Gestión de versiones",
            "Gestión de la configuración del servicio",
        ),
    ),
    PracticeGroup(
        name="Entrega y soporte",
        practices=(
            "Gestión de incidentes",
            "Gestión de problemas",
            "Mesa de servicio",
            "Gestión de peticiones de servicio",
        ),
    ),
    PracticeGroup(
        name="Gestión técnica",
        practices=(
            "Gestión de despliegues",
            "Gestión de infraestructura y plataformas",
            "Desarrollo y gestión de software",
        ),
    ),
)


def group_names(groups: tuple[PracticeGroup, ...] = ITIL_PRACTICE_GROUPS) -> list[str]:
    return [g.name for g in groups]


# ═════════════════════════════════════════════════════════════════════════════
# Tree nodes
# ═════════════════════════════════════════════════════════════════════════════

def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Document:
    """A versioned evidence file attached to one activity."""
    id: str
    name: str
    original_name: str
    url: str
    version: int
    upload_date: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "original_name": self.original_name,
            "url": self.url,
            "version": self.version,
            "upload_date": _iso(self.upload_date),
        }


@dataclass(frozen=True)
class Activity:
    """Leaf unit of work.

    ``activity_status`` and ``semaphore_status`` are derived values; build or
    change activities through ``status_engine.apply_derived_status`` so they
    never go stale.
    """
    id: str
    name: str
    description: str = ""
    responsible: str | None = None
    due_date: date | None = None
    completion_date: date | None = None
    progress: int = 0
    activity_status: ActivityStatus = ActivityStatus.OPEN
    semaphore_status: SemaphoreStatus = SemaphoreStatus.GRAY
    documents: tuple[Document, ...] = ()

    @property
    def is_closed(self) -> bool:
        return self.activity_status == ActivityStatus.CLOSED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "responsible": self.responsible,
            "due_date": _iso(self.due_date),
            "completion_date": _iso(self.completion_date),
            "progress": self.progress,
            "activity_status": self.activity_status.value,
            "semaphore_status": self.semaphore_status.value,
            "documents": [d.to_dict() for d in self.documents],
        }


@dataclass(frozen=True)
class Subcategory:
    id: str
    name: str
    activities: tuple[Activity, ...] = ()
    sharepoint_folder_path: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sharepoint_folder_path": self.sharepoint_folder_path,
            "activities": [a.to_dict() for a in self.activities],
        }


@dataclass(frozen=True)
class Category:
    """Unit of access control: permissions reference a category id."""
    id: str
    name: str
    subcategories: tuple[Subcategory, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subcategories": [s.to_dict() for s in self.subcategories],
        }


@dataclass(frozen=True)
class Practice:
    id: str
    name: str
    group: str
    categories: tuple[Category, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "categories": [c.to_dict() for c in self.categories],
        }


@dataclass(frozen=True)
class ActivityPath:
    """Ids locating one node in the practice tree.

    ``activity_id`` is None when the path addresses a subcategory (e.g. the
    target of a new activity).
    """
    practice_id: str
    category_id: str
    subcategory_id: str
    activity_id: str | None = None

    def with_activity(self, activity_id: str) -> ActivityPath:
        return ActivityPath(self.practice_id, self.category_id, self.subcategory_id, activity_id)
