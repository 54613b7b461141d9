"""Shared types for the extraction pipeline.

Defines ExtractionResult, the tagged FailureKind, ExtractionMethod,
ExecutionContext and UploadedFile used across all extractor modules, the
orchestration service and the OCR endpoint.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

PDF_MIME_TYPE = "application/pdf"


class ExtractionMethod(Enum):
    """Strategy that produced an extraction result."""

    NATIVE = "native"
    OCR_REMOTE = "ocr-remote"
    OCR_LOCAL = "ocr-local"


class ExecutionContext(Enum):
    """Where the caller runs; decides which OCR strategies are reachable."""

    BROWSER = "browser"
    SERVER = "server"


class FailureKind(Enum):
    """Closed set of failure variants, tagged where the failure happens."""

    INVALID_INPUT = "invalid_input"
    TIMEOUT = "timeout"
    ENCRYPTED = "encrypted"
    CORRUPT = "corrupt"
    INSUFFICIENT_TEXT = "insufficient_text"
    TRANSPORT = "transport"
    NO_TEXT_FOUND = "no_text_found"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class UploadedFile:
    """A user-supplied file as received at a trust boundary.

    Attributes:
        data: Raw file bytes.
        mime_type: Declared MIME type.
        filename: Original filename, forwarded to OCR services.
        size_bytes: Declared size; falls back to ``len(data)``.
    """

    data: bytes
    mime_type: str = PDF_MIME_TYPE
    filename: str = "resume.pdf"
    size_bytes: int | None = None

    @property
    def size(self) -> int:
        return self.size_bytes if self.size_bytes is not None else len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> UploadedFile:
        mime_type, _ = mimetypes.guess_type(path.name)
        data = path.read_bytes()
        return cls(
            data=data,
            mime_type=mime_type or "application/octet-stream",
            filename=path.name,
            size_bytes=len(data),
        )


@dataclass
class ExtractionResult:
    """Result of a single text extraction attempt.

    Attributes:
        success: Whether usable text was obtained.
        text: Extracted plain text; empty on failure.
        page_count: Pages processed (0 if unknown; OCR reports 1 as a sentinel).
        error: Machine-oriented failure reason when success is False.
        failure: Tagged failure variant when success is False.
        status_code: HTTP status for TRANSPORT failures.
        metadata: Diagnostics and UI messaging (camelCase wire keys such as
            ``extractionMethod``, ``usedOcr``, ``userMessage``).
    """

    success: bool
    text: str = ""
    page_count: int = 0
    error: str | None = None
    failure: FailureKind | None = None
    status_code: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(
        cls,
        kind: FailureKind,
        error: str,
        *,
        page_count: int = 0,
        status_code: int | None = None,
        user_message: str | None = None,
        **metadata: Any,
    ) -> ExtractionResult:
        """Build a failure result with empty text and a populated error."""
        meta: dict[str, Any] = {"failureKind": kind.value}
        if user_message is not None:
            meta["userMessage"] = user_message
        if status_code is not None:
            meta["status"] = status_code
        meta.update(metadata)
        return cls(
            success=False,
            text="",
            page_count=page_count,
            error=error,
            failure=kind,
            status_code=status_code,
            metadata=meta,
        )

    @property
    def method(self) -> ExtractionMethod | None:
        value = self.metadata.get("extractionMethod")
        try:
            return ExtractionMethod(value) if value else None
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        """Render the JSON wire shape ``{success, text, pageCount, error, metadata}``."""
        payload: dict[str, Any] = {
            "success": self.success,
            "text": self.text,
            "pageCount": self.page_count,
            "metadata": dict(self.metadata),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload
