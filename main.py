"""Resume Text Extractor -- command-line entry point.

Startup sequence:
    1. Load configuration (pipeline settings drive log_dir and rotation)
    2. Setup logging (must happen before any code that logs)
    3. Log the non-sensitive configuration
    4. Run the extraction cascade over the given PDF
    5. Print the result (text, or JSON with --json)

The first-party OCR endpoint is a separate ASGI app:
``uvicorn resume_extractor.api.app:app``.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import httpx

from resume_extractor.config import ExtractionSettings, OcrSettings, PipelineSettings
from resume_extractor.extractor import (
    ExecutionContext,
    ExtractionResult,
    UploadedFile,
    build_orchestrator,
)
from resume_extractor.logging import setup_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract text from a resume PDF.")
    parser.add_argument("pdf", type=Path, help="Path to the PDF file")
    parser.add_argument(
        "--context",
        choices=[c.value for c in ExecutionContext],
        default=None,
        help="Execution context deciding which OCR tiers are reachable",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the full result as JSON"
    )
    return parser.parse_args(argv)


async def run(
    upload: UploadedFile,
    extraction: ExtractionSettings,
    ocr: OcrSettings,
    context: ExecutionContext | None,
) -> ExtractionResult:
    """Extract text from *upload* with a client scoped to this run."""
    async with httpx.AsyncClient() as client:
        orchestrator = build_orchestrator(extraction, ocr, client, context=context)
        return await orchestrator.extract_text(upload)


def main(argv: list[str] | None = None) -> int:
    """Run one extraction and return the process exit code."""
    args = _parse_args(argv)

    # 1. Load configuration; the OCR key is needed to redact it from logs
    pipeline = PipelineSettings()
    extraction = ExtractionSettings()
    ocr = OcrSettings()

    # 2. Setup logging BEFORE anything else logs
    setup_logging(
        log_dir=pipeline.log_dir,
        max_bytes=pipeline.log_max_bytes,
        backup_count=pipeline.log_backup_count,
        secrets=[ocr.api_key],
    )

    # 3. Log non-sensitive config values (never log the OCR API key)
    logger.info(
        "Config loaded -- extraction: max_bytes=%s, native_timeout=%ss, context=%s",
        extraction.max_file_bytes,
        extraction.native_timeout_seconds,
        args.context or extraction.execution_context,
    )
    logger.info(
        "Config loaded -- ocr: endpoint=%s, timeout=%s, key_configured=%s",
        ocr.endpoint,
        ocr.timeout_seconds,
        bool(ocr.api_key),
    )

    if not args.pdf.is_file():
        logger.error("File not found: %s", args.pdf)
        return 1

    # 4. Run the cascade
    upload = UploadedFile.from_path(args.pdf)
    context = ExecutionContext(args.context) if args.context else None
    result = asyncio.run(run(upload, extraction, ocr, context))

    # 5. Report
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        print(result.text)
    else:
        print(result.metadata.get("userMessage") or result.error, file=sys.stderr)

    logger.info(
        "Run complete -- success=%s, method=%s, pages=%d",
        result.success,
        result.metadata.get("extractionMethod"),
        result.page_count,
    )
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
