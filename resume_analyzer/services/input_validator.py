from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from resume_analyzer.core.config import settings

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    }
)

MAX_UPLOAD_BYTES = settings.max_upload_bytes

Constraint = Literal["mime_type", "byte_size"]


@dataclass(frozen=True)
class Ok:
    ok: Literal[True] = True


@dataclass(frozen=True)
class Rejected:
    constraint: Constraint
    title: str
    reason: str
    ok: Literal[False] = False


ValidationResult = Ok | Rejected


def normalize_mime_type(mime_type: str | None) -> str:
    """Drop parameters such as charset and lower-case the media type."""
    return (mime_type or "").split(";")[0].strip().lower()


def validate_upload(mime_type: str | None, byte_size: int, *, max_bytes: int = MAX_UPLOAD_BYTES) -> ValidationResult:
    """Check a candidate upload against the type allow-list and size ceiling.

    Pure: no storage or network is touched, so it is safe to call before any
    side effect.
    """
    normalized = normalize_mime_type(mime_type)
    if normalized not in ALLOWED_MIME_TYPES:
        return Rejected(
            constraint="mime_type",
            title="Invalid file type",
            reason="Please upload a PDF, DOC, DOCX, or TXT file.",
        )
    if byte_size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        return Rejected(
            constraint="byte_size",
            title="File too large",
            reason=f"Please upload a file smaller than {limit_mb}MB.",
        )
    return Ok()
