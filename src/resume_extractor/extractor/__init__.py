"""Resume-level processing: text extraction plus optional structured parsing.

Runs the extraction cascade for one uploaded resume and, when the text is
long enough to be useful, forwards it to a structured parser.  Parsing is
best-effort: a parser timeout, failure or exception is logged and recorded
but never discards the extracted text, so the caller can still prefill the
form by hand.

Public API:
    process_resume(upload, orchestrator, parser, settings)
        -> ResumeProcessingResult
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from resume_extractor.config.settings import ExtractionSettings
from resume_extractor.extractor.quality import passes_parse_threshold
from resume_extractor.extractor.service import (
    TextExtractionOrchestrator,
    build_orchestrator,
)
from resume_extractor.extractor.types import (
    ExecutionContext,
    ExtractionMethod,
    ExtractionResult,
    FailureKind,
    UploadedFile,
)
from resume_extractor.parser import ParsedResumeData, StructuredParser

logger = logging.getLogger(__name__)

__all__ = [
    "ExecutionContext",
    "ExtractionMethod",
    "ExtractionResult",
    "FailureKind",
    "ResumeProcessingResult",
    "TextExtractionOrchestrator",
    "UploadedFile",
    "build_orchestrator",
    "process_resume",
]


@dataclass
class ResumeProcessingResult:
    """Outcome of extracting (and possibly parsing) one resume."""

    extraction: ExtractionResult
    parsed_data: ParsedResumeData | None = None
    parse_attempted: bool = False
    parse_error: str | None = None

    @property
    def extracted_text(self) -> str:
        return self.extraction.text


async def process_resume(
    upload: UploadedFile,
    orchestrator: TextExtractionOrchestrator,
    parser: StructuredParser | None,
    settings: ExtractionSettings,
) -> ResumeProcessingResult:
    """Extract text from *upload* and parse it when worthwhile.

    The parser is only called when extraction succeeded and the stripped text
    is longer than ``settings.min_parse_chars``.

    Args:
        upload: The uploaded resume file.
        orchestrator: Configured extraction cascade.
        parser: Structured parser, or None when no parser is configured.
        settings: Extraction configuration (parse threshold and timeout).

    Returns:
        ResumeProcessingResult carrying the extraction result and, on a
        successful parse, the structured data.
    """
    extraction = await orchestrator.extract_text(upload)
    result = ResumeProcessingResult(extraction=extraction)

    if not extraction.success:
        logger.warning(
            "Skipping structured parse for %s: extraction failed (%s)",
            upload.filename,
            extraction.error,
        )
        return result

    if parser is None:
        logger.info("Skipping structured parse for %s: no parser configured", upload.filename)
        return result

    if not passes_parse_threshold(extraction.text, settings.min_parse_chars):
        logger.info(
            "Skipping structured parse for %s: text too short (%d chars <= %d)",
            upload.filename,
            len(extraction.text.strip()),
            settings.min_parse_chars,
        )
        return result

    result.parse_attempted = True
    try:
        parsed = await asyncio.wait_for(
            parser.parse(extraction.text), timeout=settings.parse_timeout_seconds
        )
    except TimeoutError:
        logger.warning(
            "Structured parse timed out after %.0fs for %s",
            settings.parse_timeout_seconds,
            upload.filename,
        )
        result.parse_error = "timeout"
        return result
    except Exception as e:
        # Parser is an external collaborator; its failure must not lose the text
        logger.exception("Structured parse raised for %s", upload.filename)
        result.parse_error = f"parser_error: {e}"
        return result

    if parsed.success and parsed.data is not None:
        result.parsed_data = parsed.data
        logger.info(
            "Structured parse complete for %s: %d jobs, %d schools",
            upload.filename,
            len(parsed.data.experience),
            len(parsed.data.education),
        )
    else:
        result.parse_error = parsed.error or "parse_failed"
        logger.warning(
            "Structured parse failed for %s: %s", upload.filename, result.parse_error
        )

    return result
