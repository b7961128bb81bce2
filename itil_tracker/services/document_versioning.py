"""
Document Versioning — version numbers and storage-safe names for evidence.

Uploading a file whose original name already exists on the activity creates
a new version of it (1 + highest existing version) and needs explicit user
confirmation; a first upload is committed directly.

Generated names have the form::

    {activity_id}_{sanitized_activity_name}_v{version}.{extension}

and never exceed the configured maximum length, which models the path-length
limit of the target document library. Only the activity-name part is
shortened to fit.

Usage:
    from itil_tracker.services.document_versioning import plan_upload

    plan = plan_upload(activity.documents, "report.pdf", activity.id, activity.name, 128)
    if plan.requires_confirmation:
        ...  # ask the user before appending plan.document
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from itil_tracker.core.exceptions import NotFoundError, ValidationError
from itil_tracker.models.integrations import SharePointConfig
from itil_tracker.models.practice import Document

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS = frozenset({
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "msg", "eml", "zip", "rar", "7z",
})
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

UNSAVED_ACTIVITY_ID = "NUEVA-ACTIVIDAD"
UNNAMED_ACTIVITY = "actividad_sin_nombre"

_DISALLOWED_CHARS = re.compile(r"[^A-Za-z0-9\s_-]")
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class UploadPlan:
    document: Document
    requires_confirmation: bool

    def to_dict(self) -> dict:
        return {
            "document": self.document.to_dict(),
            "requires_confirmation": self.requires_confirmation,
        }


def sanitize_file_name(name: str, max_length: int) -> str:
    """Keep ``[A-Za-z0-9_- ]``, turn whitespace runs into ``_``, truncate."""
    cleaned = _DISALLOWED_CHARS.sub("", name)
    cleaned = _WHITESPACE_RUN.sub("_", cleaned)
    return cleaned[:max(0, max_length)]


def file_extension(file_name: str) -> str:
    """Text after the last dot, or "" when the name has no dot."""
    _base, dot, ext = file_name.rpartition(".")
    return ext if dot else ""


def next_version(existing: tuple[Document, ...], original_name: str) -> int:
    versions = [d.version for d in existing if d.original_name == original_name]
    return max(versions, default=0) + 1


def generate_file_name(
    activity_id: str,
    activity_name: str,
    version: int,
    extension: str,
    max_length: int,
) -> str:
    suffix = f".{extension}" if extension else ""
    fixed_length = len(activity_id) + len("_") + len("_v") + len(str(version)) + len(suffix)
    budget = max_length - fixed_length
    label = sanitize_file_name(activity_name or "", budget)
    if not label.strip("_"):
        # nothing usable survived sanitizing
        label = sanitize_file_name(UNNAMED_ACTIVITY, budget)
    generated = f"{activity_id}_{label}_v{version}{suffix}"
    if len(generated) > max_length:
        # Fixed parts alone exceed the limit; keep the extension if it fits.
        if len(suffix) < max_length:
            generated = generated[: max_length - len(suffix)] + suffix
        else:
            generated = generated[:max_length]
    return generated


def build_document_url(config: SharePointConfig | None, folder_path: str | None, file_name: str) -> str:
    if config is None or not config.enabled:
        return f"#mock-url/{file_name}"
    parts = [config.site_url.rstrip("/")]
    if folder_path:
        parts.append(folder_path.strip("/"))
    parts.append(file_name)
    return "/".join(parts)


def validate_upload(
    original_name: str,
    size: int | None,
    *,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    accepted_extensions: frozenset[str] = ACCEPTED_EXTENSIONS,
) -> None:
    """Reject names without an accepted extension and files over the size limit."""
    errors: dict[str, str] = {}
    if not original_name or not original_name.strip():
        errors["original_name"] = "File name is required."
    else:
        ext = file_extension(original_name).lower()
        if ext not in accepted_extensions:
            errors["original_name"] = (
                f"Extension '{ext}' not accepted. Allowed: {', '.join(sorted(accepted_extensions))}."
            )
    if size is not None and (size < 0 or size > max_bytes):
        errors["size"] = f"File size must be between 0 and {max_bytes} bytes."
    if errors:
        raise ValidationError("Invalid upload", details=errors)


def plan_upload(
    existing_documents: tuple[Document, ...],
    original_name: str,
    activity_id: str | None,
    activity_name: str,
    max_file_name_length: int,
    *,
    now: datetime | None = None,
    storage: SharePointConfig | None = None,
    folder_path: str | None = None,
) -> UploadPlan:
    """Build the document for an upload and decide whether it needs confirmation."""
    activity_id = activity_id or UNSAVED_ACTIVITY_ID
    version = next_version(existing_documents, original_name)
    name = generate_file_name(
        activity_id,
        activity_name,
        version,
        file_extension(original_name),
        max_file_name_length,
    )
    document = Document(
        id=f"doc-{uuid.uuid4().hex}",
        name=name,
        original_name=original_name,
        url=build_document_url(storage, folder_path, name),
        version=version,
        upload_date=now or datetime.now(timezone.utc),
    )
    requires_confirmation = any(d.original_name == original_name for d in existing_documents)
    if requires_confirmation:
        logger.debug("Upload of %s on %s is version %d", original_name, activity_id, version)
    return UploadPlan(document=document, requires_confirmation=requires_confirmation)


def remove_document(documents: tuple[Document, ...], document_id: str) -> tuple[Document, ...]:
    kept = tuple(d for d in documents if d.id != document_id)
    if len(kept) == len(documents):
        raise NotFoundError("Document", document_id)
    return kept
