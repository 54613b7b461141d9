"""Local-service OCR extraction through the first-party OCR endpoint.

Untrusted callers cannot hold the OCR provider's API key, so they post the
PDF to this deployment's own ``/api/ai/resume/ocr`` route, which performs the
remote OCR call with the server-held key.  The upload limits are enforced
again here because this hop is its own trust boundary.

This is the last tier of the browser cascade; when it fails, every strategy
has been exhausted.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from resume_extractor.extractor.ocr_remote import OCR_PAGE_COUNT_SENTINEL
from resume_extractor.extractor.types import (
    PDF_MIME_TYPE,
    ExtractionMethod,
    ExtractionResult,
    FailureKind,
    UploadedFile,
)
from resume_extractor.extractor.validation import check_upload_limits

logger = logging.getLogger(__name__)


def _error_text(payload: dict[str, Any], default: str) -> str:
    error = payload.get("error")
    return error if isinstance(error, str) and error else default


class LocalOcrExtractor:
    """OCR a PDF by proxying through the first-party endpoint.

    Args:
        endpoint_url: URL of the deployment's OCR route.
        http_client: Shared ``httpx.AsyncClient`` whose lifecycle the caller owns.
        max_file_bytes: Size cap enforced before the upload.
        timeout_seconds: Request bound; None means unbounded.
    """

    method = ExtractionMethod.OCR_LOCAL

    def __init__(
        self,
        endpoint_url: str,
        http_client: httpx.AsyncClient,
        max_file_bytes: int,
        timeout_seconds: float | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._client = http_client
        self._max_file_bytes = max_file_bytes
        self._timeout = timeout_seconds

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        rejection = check_upload_limits(
            UploadedFile(data=data, mime_type=PDF_MIME_TYPE, filename=filename),
            self._max_file_bytes,
        )
        if rejection is not None:
            return rejection

        logger.info("Requesting server-side OCR for %s", filename)

        try:
            response = await self._client.post(
                self._endpoint_url,
                files={"file": (filename, data, PDF_MIME_TYPE)},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("Server-side OCR request failed: %s", e)
            return self._failure(
                FailureKind.TRANSPORT, f"Server OCR request failed: {e}"
            )

        try:
            payload: Any = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if not response.is_success:
            error = _error_text(payload, f"Server OCR failed: {response.status_code}")
            logger.warning(
                "Server-side OCR returned HTTP %d: %s", response.status_code, error
            )
            return self._failure(
                FailureKind.TRANSPORT, error, status_code=response.status_code
            )

        text = payload.get("text")
        if not payload.get("success") or not isinstance(text, str) or not text.strip():
            error = _error_text(payload, "Server OCR returned no text")
            logger.warning("Server-side OCR returned no text: %s", error)
            return self._failure(FailureKind.NO_TEXT_FOUND, error)

        logger.info("Server-side OCR extracted %d chars from %s", len(text), filename)
        metadata = payload.get("metadata")
        metadata = dict(metadata) if isinstance(metadata, dict) else {}
        page_count = payload.get("pageCount")
        if not isinstance(page_count, int) or isinstance(page_count, bool) or page_count < 1:
            page_count = OCR_PAGE_COUNT_SENTINEL
        metadata.update(
            {
                "extractionMethod": self.method.value,
                "usedOcr": True,
                "triedOcr": True,
                "serverSide": True,
                "userMessage": (
                    "Text extracted using server-side OCR "
                    "(optical character recognition)."
                ),
            }
        )
        return ExtractionResult(
            success=True,
            text=text,
            page_count=page_count,
            metadata=metadata,
        )

    def _failure(
        self, kind: FailureKind, error: str, status_code: int | None = None
    ) -> ExtractionResult:
        return ExtractionResult.failed(
            kind,
            error,
            status_code=status_code,
            user_message="Server-side OCR extraction failed. Please try again later.",
            extractionMethod=self.method.value,
            triedOcr=True,
            triedServerSide=True,
            serverSide=True,
        )
