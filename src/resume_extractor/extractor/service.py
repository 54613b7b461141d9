"""Per-upload PDF text extraction service with cascading fallback.

Orchestrates the extraction cascade for a single resume PDF:

1. **Native** -- PyMuPDF text layer; free and fast.
2. **Remote OCR** -- OCR.space, reached directly (server context with the
   server-held key, or browser context on the keyless free tier).
3. **Local-service OCR** -- browser context only: the first-party endpoint
   proxies the OCR call with the server-held key.

Strategies run strictly one after another; the first sufficient result wins.
Which OCR tiers are reachable is fixed by the explicit ExecutionContext passed
at construction.  The orchestrator never raises: input rejections, strategy
failures and exhaustion all come back as ExtractionResult objects.

Edge cases handled:
- Invalid uploads (empty, wrong MIME, over the cap, missing ``%PDF``) are
  rejected before any strategy runs.
- Encrypted or corrupt PDFs still go to OCR, but when OCR fails too the
  original native diagnostic is reported, not the OCR error.
- Native timeouts and insufficient text only mean "try OCR", so the last OCR
  failure (e.g. a 429) becomes the reported error.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Protocol

import httpx

from resume_extractor.config.settings import ExtractionSettings, OcrSettings
from resume_extractor.extractor.native import (
    DocumentOpener,
    NativeExtractor,
    open_pdf_document,
)
from resume_extractor.extractor.ocr_local import LocalOcrExtractor
from resume_extractor.extractor.ocr_remote import RemoteOcrExtractor
from resume_extractor.extractor.quality import passes_ocr_check
from resume_extractor.extractor.types import (
    ExecutionContext,
    ExtractionMethod,
    ExtractionResult,
    FailureKind,
    UploadedFile,
)
from resume_extractor.extractor.validation import validate_upload

logger = logging.getLogger(__name__)

# Re-export shared types so consumers can import from service
__all__ = [
    "ExecutionContext",
    "ExtractionMethod",
    "ExtractionResult",
    "FailureKind",
    "OcrStrategy",
    "TextExtractionOrchestrator",
    "UploadedFile",
    "build_orchestrator",
]

# Native failures that OCR might recover from
_OCR_TRIGGERS = frozenset(
    {
        FailureKind.TIMEOUT,
        FailureKind.ENCRYPTED,
        FailureKind.CORRUPT,
        FailureKind.INSUFFICIENT_TEXT,
    }
)

# Native failures that describe the file itself and outrank later OCR errors
_DIAGNOSTIC_FAILURES = frozenset({FailureKind.ENCRYPTED, FailureKind.CORRUPT})

_OCR_REASONS = {
    FailureKind.TIMEOUT: "because PDF loading timed out",
    FailureKind.INSUFFICIENT_TEXT: "because native extraction was insufficient",
}

_EXHAUSTED_MESSAGE = (
    "PDF text extraction failed. Please ensure the PDF contains selectable "
    "text or try a different file."
)
_CORRUPT_EXHAUSTED_MESSAGE = (
    "PDF extraction failed and OCR fallback also failed. The file may be "
    "corrupted, password-protected, or in an unsupported format."
)


class OcrStrategy(Protocol):
    """Any OCR tier: remote third-party call or first-party proxy."""

    method: ExtractionMethod

    async def extract(self, data: bytes, filename: str) -> ExtractionResult: ...


class TextExtractionOrchestrator:
    """Run the extraction cascade for one upload at a time.

    Holds no per-call state, so one instance can serve concurrent calls.

    Args:
        settings: Extraction configuration (size cap, native timeout).
        native: Native text-layer extractor.
        remote_ocr: Direct third-party OCR tier, or None when the caller may
            not reach the OCR provider.
        local_ocr: First-party OCR proxy; only used in browser context.
        context: Caller's execution context.
    """

    def __init__(
        self,
        settings: ExtractionSettings,
        native: NativeExtractor,
        remote_ocr: OcrStrategy | None = None,
        local_ocr: OcrStrategy | None = None,
        context: ExecutionContext = ExecutionContext.SERVER,
    ) -> None:
        self._settings = settings
        self._native = native
        self._remote_ocr = remote_ocr
        self._local_ocr = local_ocr
        self._context = context

    @property
    def context(self) -> ExecutionContext:
        return self._context

    def ocr_strategies(self) -> list[OcrStrategy]:
        """OCR tiers reachable from this context, in cascade order."""
        strategies: list[OcrStrategy] = []
        if self._remote_ocr is not None:
            strategies.append(self._remote_ocr)
        if self._context is ExecutionContext.BROWSER and self._local_ocr is not None:
            strategies.append(self._local_ocr)
        return strategies

    async def extract_text(self, upload: UploadedFile) -> ExtractionResult:
        """Extract text from *upload* using the first strategy that succeeds.

        Returns:
            ExtractionResult with text on success, or with success=False, an
            error and a ``userMessage`` for display on failure.
        """
        rejection = validate_upload(upload, self._settings.max_file_bytes)
        if rejection is not None:
            return rejection

        logger.info(
            "Extracting text from %s (%d bytes, context=%s)",
            upload.filename,
            upload.size,
            self._context.value,
        )

        # --- Tier 1: native text layer ---

        native_result = await self._native.extract(
            upload.data, self._settings.native_timeout_seconds
        )
        if native_result.success:
            logger.info(
                "Extraction succeeded via native text layer: %s (%d chars, %d pages)",
                upload.filename,
                len(native_result.text),
                native_result.page_count,
            )
            return native_result

        if native_result.failure not in _OCR_TRIGGERS:
            logger.error(
                "Native extraction failed for %s without OCR fallback: %s",
                upload.filename,
                native_result.error,
            )
            return native_result

        logger.warning(
            "Native extraction failed for %s (%s): %s, falling back to OCR",
            upload.filename,
            native_result.failure.value,
            native_result.error,
        )

        # --- Tiers 2-3: OCR, strictly sequential ---

        ocr_failures: list[ExtractionResult] = []
        for strategy in self.ocr_strategies():
            logger.info("Attempting %s for %s", strategy.method.value, upload.filename)
            result = await strategy.extract(upload.data, upload.filename)

            if result.success and passes_ocr_check(result.text):
                logger.info(
                    "Extraction succeeded via %s: %s (%d chars)",
                    strategy.method.value,
                    upload.filename,
                    len(result.text),
                )
                return self._tag_ocr_success(result, native_result)

            logger.warning(
                "%s failed for %s: %s",
                strategy.method.value,
                upload.filename,
                result.error,
            )
            ocr_failures.append(result)

        return self._exhausted(upload, native_result, ocr_failures)

    def _tag_ocr_success(
        self, result: ExtractionResult, native_result: ExtractionResult
    ) -> ExtractionResult:
        reason = _OCR_REASONS.get(
            native_result.failure, "because native PDF extraction failed"
        )
        source = "server-side OCR" if result.metadata.get("serverSide") else "OCR"
        metadata = {
            **result.metadata,
            "usedOcr": True,
            "triedNative": True,
            "triedOcr": True,
            "originalMethod": ExtractionMethod.NATIVE.value,
            "originalError": native_result.error,
            "nativeFailure": native_result.failure.value,
            "userMessage": (
                f"Text extracted using {source} (optical character recognition) "
                f"{reason}."
            ),
        }
        return dataclasses.replace(result, metadata=metadata)

    def _exhausted(
        self,
        upload: UploadedFile,
        native_result: ExtractionResult,
        ocr_failures: list[ExtractionResult],
    ) -> ExtractionResult:
        primary = native_result
        if native_result.failure not in _DIAGNOSTIC_FAILURES and ocr_failures:
            primary = ocr_failures[-1]

        if primary is native_result and native_result.failure is FailureKind.ENCRYPTED:
            user_message = native_result.metadata.get("userMessage", _EXHAUSTED_MESSAGE)
        elif primary is native_result and ocr_failures:
            user_message = _CORRUPT_EXHAUSTED_MESSAGE
        elif primary.status_code in (403, 429):
            user_message = primary.metadata.get("userMessage", _EXHAUSTED_MESSAGE)
        else:
            user_message = _EXHAUSTED_MESSAGE

        last_attempt = ocr_failures[-1] if ocr_failures else native_result

        logger.error(
            "All extraction methods failed for %s (%d OCR attempts): %s",
            upload.filename,
            len(ocr_failures),
            primary.error,
        )
        return ExtractionResult.failed(
            primary.failure or FailureKind.NO_TEXT_FOUND,
            primary.error or "all_methods_failed",
            page_count=last_attempt.page_count,
            status_code=primary.status_code,
            user_message=user_message,
            triedNative=True,
            triedOcr=bool(ocr_failures),
            triedServerSide=any(f.metadata.get("serverSide") for f in ocr_failures),
            originalMethod=ExtractionMethod.NATIVE.value,
            originalError=native_result.error,
            ocrErrors=[f.error for f in ocr_failures],
        )


def build_orchestrator(
    extraction_settings: ExtractionSettings,
    ocr_settings: OcrSettings,
    http_client: httpx.AsyncClient,
    context: ExecutionContext | None = None,
    open_document: DocumentOpener = open_pdf_document,
) -> TextExtractionOrchestrator:
    """Wire the default strategies for *context*.

    Server context calls the OCR provider directly with the server-held key.
    Browser context has no key: it may try the keyless free tier (when
    ``browser_remote_ocr`` is enabled) and then proxies through the
    first-party endpoint.

    Args:
        extraction_settings: Cascade configuration.
        ocr_settings: OCR endpoints, key and timeout.
        http_client: Shared client whose lifecycle the caller owns.
        context: Overrides ``extraction_settings.execution_context``.
        open_document: Parser factory for the native tier.
    """
    if context is None:
        context = ExecutionContext(extraction_settings.execution_context)

    native = NativeExtractor(extraction_settings, open_document=open_document)

    if context is ExecutionContext.SERVER:
        remote = RemoteOcrExtractor(
            ocr_settings, http_client, api_key=ocr_settings.api_key
        )
        local = None
    else:
        remote = (
            RemoteOcrExtractor(ocr_settings, http_client, api_key=None)
            if extraction_settings.browser_remote_ocr
            else None
        )
        local = LocalOcrExtractor(
            ocr_settings.local_endpoint,
            http_client,
            max_file_bytes=extraction_settings.max_file_bytes,
            timeout_seconds=ocr_settings.timeout_seconds,
        )

    logger.debug(
        "Built orchestrator: context=%s, remote_ocr=%s, local_ocr=%s",
        context.value,
        remote is not None,
        local is not None,
    )
    return TextExtractionOrchestrator(
        extraction_settings,
        native,
        remote_ocr=remote,
        local_ocr=local,
        context=context,
    )
