"""Native text-layer extraction using PyMuPDF.

Reads the embedded text objects of every page straight from the in-memory
buffer.  This is the first tier in the extraction cascade: free and fast, but
useless on scanned resumes whose pages are only images.

Parser safety: the document is opened from bytes (no disk or network access),
MuPDF runs in-process (no worker), no document JavaScript is evaluated, and
text is pulled with text-only flags so embedded raster images are never
decoded.

The whole open+extract step runs in a worker thread raced against a wall-clock
limit.  MuPDF has no cancellation hook, so on timeout the thread is abandoned
rather than killed; it only touches its own document object and its result
is discarded.  The thread is a daemon outside any executor, so neither
``asyncio.run`` nor interpreter shutdown waits for a hung parse.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

import pymupdf

from resume_extractor.config.settings import ExtractionSettings
from resume_extractor.extractor.quality import (
    normalize_whitespace,
    passes_sufficiency_check,
)
from resume_extractor.extractor.types import (
    ExtractionMethod,
    ExtractionResult,
    FailureKind,
)

logger = logging.getLogger(__name__)

# Words mode with ligature/whitespace preservation; excludes image blocks
_TEXT_FLAGS = pymupdf.TEXTFLAGS_WORDS

DocumentOpener = Callable[[bytes], Any]


def run_in_daemon_thread(func: Callable[..., Any], *args: Any) -> asyncio.Future:
    """Run *func* on a fresh daemon thread and expose its outcome as a future.

    Cancelling the future (e.g. from ``asyncio.wait_for``) does not stop the
    thread; whatever it produces afterwards is dropped.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def deliver(outcome: Any, failed: bool) -> None:
        if future.done():
            return
        if failed:
            future.set_exception(outcome)
        else:
            future.set_result(outcome)

    def worker() -> None:
        try:
            outcome, failed = func(*args), False
        except Exception as e:
            outcome, failed = e, True
        try:
            loop.call_soon_threadsafe(deliver, outcome, failed)
        except RuntimeError:
            # Event loop already closed
            logger.debug("Discarding result of abandoned %s call", func.__name__)

    threading.Thread(target=worker, name="native-pdf-extract", daemon=True).start()
    return future


def open_pdf_document(data: bytes) -> pymupdf.Document:
    """Default parser factory: open *data* as a PDF held in memory."""
    return pymupdf.open(stream=data, filetype="pdf")


class NativeExtractor:
    """Extract the embedded text layer of a PDF.

    Args:
        settings: Extraction configuration (timeout, sufficiency threshold).
        open_document: Parser factory returning a document exposing
            ``needs_pass``, ``page_count``, ``load_page(i)`` and ``close()``.
    """

    method = ExtractionMethod.NATIVE

    def __init__(
        self,
        settings: ExtractionSettings,
        open_document: DocumentOpener = open_pdf_document,
    ) -> None:
        self._settings = settings
        self._open_document = open_document

    async def extract(
        self, data: bytes, time_limit: float | None = None
    ) -> ExtractionResult:
        """Extract text from *data*, giving up after *time_limit* seconds.

        Never raises: timeouts, parser errors and insufficient text all come
        back as failed results tagged with a FailureKind.
        """
        timeout = (
            time_limit
            if time_limit is not None
            else self._settings.native_timeout_seconds
        )

        try:
            return await asyncio.wait_for(
                run_in_daemon_thread(self._extract_sync, data), timeout=timeout
            )
        except TimeoutError:
            logger.warning(
                "Native extraction timed out after %.1fs, abandoning parser thread",
                timeout,
            )
            return ExtractionResult.failed(
                FailureKind.TIMEOUT,
                f"PDF loading timed out after {timeout:g} seconds. "
                "The file may be corrupted or too large.",
                user_message="PDF loading timed out.",
                extractionMethod=self.method.value,
                triedNative=True,
            )
        except Exception as e:
            logger.exception("Unexpected native extraction failure")
            return ExtractionResult.failed(
                FailureKind.CORRUPT,
                f"PDF parsing failed: {e}",
                user_message="PDF loading failed. Please try a different file.",
                extractionMethod=self.method.value,
                triedNative=True,
            )

    def _extract_sync(self, data: bytes) -> ExtractionResult:
        try:
            doc = self._open_document(data)
        except Exception as e:
            logger.warning("Cannot open PDF: %s", e)
            return ExtractionResult.failed(
                FailureKind.CORRUPT,
                f"The uploaded file appears to be corrupted or is not a valid PDF: {e}",
                user_message="PDF loading failed. Please try a different file.",
                extractionMethod=self.method.value,
                triedNative=True,
            )

        try:
            if doc.needs_pass:
                logger.warning("Encrypted PDF, native extraction not possible")
                return ExtractionResult.failed(
                    FailureKind.ENCRYPTED,
                    "The PDF is password protected and cannot be processed.",
                    user_message=(
                        "This PDF is password protected. "
                        "Please upload an unlocked copy."
                    ),
                    extractionMethod=self.method.value,
                    triedNative=True,
                )

            page_count = doc.page_count
            page_texts, first_page_text, processed = self._read_pages(
                doc, page_count
            )
        finally:
            doc.close()

        text = normalize_whitespace("\n\n".join(page_texts))

        logger.info(
            "Native extraction read %d chars from %d/%d pages",
            len(text),
            processed,
            page_count,
        )

        if page_count == 0 or not passes_sufficiency_check(
            text, first_page_text, self._settings.min_native_chars
        ):
            return ExtractionResult.failed(
                FailureKind.INSUFFICIENT_TEXT,
                "insufficient text",
                page_count=page_count,
                user_message="This PDF has little or no selectable text.",
                extractionMethod=self.method.value,
                triedNative=True,
                textLength=len(text),
                processedPages=processed,
                totalPages=page_count,
            )

        return ExtractionResult(
            success=True,
            text=text,
            page_count=page_count,
            metadata={
                "extractionMethod": self.method.value,
                "usedOcr": False,
                "triedNative": True,
                "triedOcr": False,
                "processedPages": processed,
                "totalPages": page_count,
                "userMessage": "Text extracted successfully from the PDF text layer.",
            },
        )

    def _read_pages(self, doc: Any, page_count: int) -> tuple[list[str], str, int]:
        """Join each page's words with spaces; skip pages that fail to load.

        Returns:
            Tuple of (non-empty page texts, first page text, pages processed).
        """
        page_texts: list[str] = []
        first_page_text = ""
        processed = 0

        for page_number in range(page_count):
            try:
                words = doc.load_page(page_number).get_text("words", flags=_TEXT_FLAGS)
            except Exception as e:
                logger.warning(
                    "Skipping page %d/%d: %s", page_number + 1, page_count, e
                )
                continue

            page_text = " ".join(w[4] for w in words if w[4].strip())
            if page_number == 0:
                first_page_text = page_text

            if page_text.strip():
                page_texts.append(page_text)
            else:
                logger.debug("Page %d/%d contains no text", page_number + 1, page_count)
            processed += 1

        return page_texts, first_page_text, processed
