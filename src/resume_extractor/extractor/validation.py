"""Upload gate applied before any extraction strategy runs.

Rejects empty files, non-PDF MIME types, files over the size cap and buffers
without the ``%PDF`` signature.  The same checks guard every trust boundary
that accepts raw bytes (orchestrator, local OCR client, OCR endpoint), so a
rejected upload never costs a parser run or an OCR request.
"""

from __future__ import annotations

import logging

from resume_extractor.extractor.types import (
    PDF_MIME_TYPE,
    ExtractionResult,
    FailureKind,
    UploadedFile,
)

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"

_INVALID_PDF_MESSAGE = "The uploaded file is not a valid PDF document."


def format_size_limit(max_bytes: int) -> str:
    """Render a byte cap for messages, e.g. ``1MB``."""
    if max_bytes % 1_048_576 == 0:
        return f"{max_bytes // 1_048_576}MB"
    return f"{max_bytes} bytes"


def _reject(error: str, user_message: str) -> ExtractionResult:
    logger.warning("Upload rejected: %s", error)
    return ExtractionResult.failed(
        FailureKind.INVALID_INPUT,
        error,
        user_message=user_message,
        triedNative=False,
        triedOcr=False,
    )


def check_upload_limits(
    upload: UploadedFile, max_bytes: int
) -> ExtractionResult | None:
    """Check emptiness, MIME type and size cap.

    Returns:
        A failed ExtractionResult describing the first violated rule, or
        None when the upload is acceptable.
    """
    if upload.size == 0 or not upload.data:
        return _reject(
            "PDF file is empty",
            "The selected file is empty. Please choose a different PDF.",
        )

    if upload.mime_type != PDF_MIME_TYPE:
        return _reject(
            f"File is not a PDF (got {upload.mime_type or 'unknown type'})",
            "Please upload a PDF file.",
        )

    size = max(upload.size, len(upload.data))
    if size > max_bytes:
        limit = format_size_limit(max_bytes)
        return _reject(
            f"PDF file is too large ({size} bytes, max {limit})",
            f"The PDF is too large. Please upload a file smaller than {limit}.",
        )

    return None


def validate_upload(upload: UploadedFile, max_bytes: int) -> ExtractionResult | None:
    """Full input gate: limits plus the ``%PDF`` signature check.

    Returns:
        A failed ExtractionResult, or None when extraction may proceed.
    """
    rejection = check_upload_limits(upload, max_bytes)
    if rejection is not None:
        return rejection

    if not upload.data.startswith(PDF_SIGNATURE):
        header = upload.data[:4].decode("ascii", errors="replace")
        return _reject(
            f"{_INVALID_PDF_MESSAGE} Expected '%PDF' header, got {header!r}",
            _INVALID_PDF_MESSAGE,
        )

    return None
