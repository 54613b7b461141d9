"""Remote OCR extraction through the OCR.space HTTP API.

Uploads the raw PDF as multipart form data with English recognition and the
more accurate engine (``OCREngine=2``).  Works on image-only resumes, at the
cost of a network round-trip and third-party rate-limit quota, which is why
the orchestrator only reaches this tier after native extraction fails.

Failures are driven purely by HTTP status and response body; every httpx
error is caught here and returned as a TRANSPORT failure.  Requests are
bounded by ``OcrSettings.timeout_seconds`` (None means unbounded).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from resume_extractor.config.settings import OcrSettings
from resume_extractor.extractor.quality import passes_ocr_check
from resume_extractor.extractor.types import (
    PDF_MIME_TYPE,
    ExtractionMethod,
    ExtractionResult,
    FailureKind,
)

logger = logging.getLogger(__name__)

# OCR.space does not report page counts
OCR_PAGE_COUNT_SENTINEL = 1

_STATUS_ERRORS: dict[int, tuple[str, str]] = {
    403: (
        "OCR API access denied. This may be due to rate limiting or a missing API key.",
        "OCR service is currently unavailable. Please try again later or contact support.",
    ),
    429: (
        "OCR API rate limit exceeded. Please try again later.",
        "OCR service is temporarily unavailable due to high usage. "
        "Please try again in a few minutes.",
    ),
}


def _service_error(payload: Any) -> str | None:
    """Pull ``ErrorMessage`` / ``ErrorDetails`` out of an OCR.space body."""
    if not isinstance(payload, dict):
        return None
    for key in ("ErrorMessage", "ErrorDetails"):
        value = payload.get(key)
        if isinstance(value, list):
            value = "; ".join(str(v) for v in value if v)
        if value:
            return str(value)
    return None


def parse_ocr_payload(payload: Any) -> str | None:
    """Join every ``ParsedResults[].ParsedText`` with newlines.

    Entries that are not objects, or whose ``ParsedText`` is not a string,
    are skipped.

    Returns:
        The joined text, or None if the payload has no parsed results.
    """
    if not isinstance(payload, dict):
        return None
    results = payload.get("ParsedResults")
    if not isinstance(results, list) or not results:
        return None
    texts = [
        r["ParsedText"]
        for r in results
        if isinstance(r, dict) and isinstance(r.get("ParsedText"), str)
    ]
    return "\n".join(texts).strip()


class RemoteOcrExtractor:
    """OCR a PDF through the third-party service.

    Args:
        settings: OCR endpoint, language, engine and timeout.
        http_client: Shared ``httpx.AsyncClient`` whose lifecycle the caller owns.
        api_key: Key to attach; browser-context callers have none.
        require_api_key: Fail fast with NOT_CONFIGURED when no key is set
            (the server-side proxy must never fall back to the free tier).
    """

    method = ExtractionMethod.OCR_REMOTE

    def __init__(
        self,
        settings: OcrSettings,
        http_client: httpx.AsyncClient,
        api_key: str | None = None,
        require_api_key: bool = False,
    ) -> None:
        self._settings = settings
        self._client = http_client
        self._api_key = api_key or None
        self._require_api_key = require_api_key

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        """Send *data* to the OCR service and map the response to a result."""
        if self._require_api_key and not self._api_key:
            logger.warning("No OCR API key configured, skipping OCR request")
            return ExtractionResult.failed(
                FailureKind.NOT_CONFIGURED,
                "OCR service not configured",
                user_message="OCR service is not available on this server.",
                extractionMethod=self.method.value,
                triedOcr=False,
            )

        form = {
            "language": self._settings.language,
            "isOverlayRequired": "false",
            "OCREngine": str(self._settings.engine),
        }
        if self._api_key:
            form["apikey"] = self._api_key
        else:
            logger.info("No OCR API key available, using the free tier")

        logger.info("Sending %s (%d bytes) to remote OCR", filename, len(data))

        try:
            response = await self._client.post(
                self._settings.endpoint,
                data=form,
                files={"file": (filename, data, PDF_MIME_TYPE)},
                timeout=self._settings.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            logger.warning("Remote OCR request timed out: %s", e)
            return self._transport_failure(
                f"OCR request timed out after {self._settings.timeout_seconds}s",
                "OCR extraction timed out. Please try again.",
            )
        except httpx.HTTPError as e:
            logger.warning("Remote OCR request failed: %s", e)
            return self._transport_failure(
                f"Network error during OCR extraction: {e}",
                "OCR extraction failed due to a network error. "
                "Please check your connection and try again.",
            )

        if not response.is_success:
            return self._status_failure(response)

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Remote OCR returned a non-JSON body")
            return self._transport_failure(
                "OCR extraction failed: invalid response from OCR service",
                "OCR extraction failed. Please try again.",
                status_code=response.status_code,
            )

        text = parse_ocr_payload(payload)
        if text is None or not passes_ocr_check(text):
            message = _service_error(payload) or "No text found in the document"
            logger.warning("Remote OCR found no text: %s", message)
            return ExtractionResult.failed(
                FailureKind.NO_TEXT_FOUND,
                f"OCR extraction failed: {message}",
                user_message=(
                    "OCR extraction failed. The document may not contain readable text."
                ),
                extractionMethod=self.method.value,
                triedOcr=True,
            )

        logger.info("Remote OCR extracted %d chars from %s", len(text), filename)
        return ExtractionResult(
            success=True,
            text=text,
            page_count=OCR_PAGE_COUNT_SENTINEL,
            metadata={
                "extractionMethod": self.method.value,
                "usedOcr": True,
                "triedOcr": True,
                "userMessage": "Text extracted using OCR (optical character recognition).",
            },
        )

    def _status_failure(self, response: httpx.Response) -> ExtractionResult:
        status = response.status_code
        logger.warning(
            "Remote OCR returned HTTP %d: %s", status, response.text[:200]
        )
        error, user_message = _STATUS_ERRORS.get(
            status,
            (
                f"OCR API error: {status} {response.reason_phrase}",
                "OCR extraction failed. Please try again.",
            ),
        )
        return self._transport_failure(error, user_message, status_code=status)

    def _transport_failure(
        self, error: str, user_message: str, status_code: int | None = None
    ) -> ExtractionResult:
        return ExtractionResult.failed(
            FailureKind.TRANSPORT,
            error,
            status_code=status_code,
            user_message=user_message,
            extractionMethod=self.method.value,
            triedOcr=True,
        )
