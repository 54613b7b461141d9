"""Structured-parser interface and tolerant reader for model JSON output.

The structured parser itself is an external collaborator: anything that
turns resume text into ParsedResumeData or a failure.  This module defines
that seam (``StructuredParser``, ``ParseResult``) plus the two helpers every
LLM-backed implementation needs:

- ``sanitize_resume_text`` -- strip braces so prompt templating cannot break.
- ``parse_model_output`` -- strip code fences, repair trailing commas, fall
  back to the outermost ``{...}`` span, then validate against the schema.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError

from resume_extractor.parser.schemas import ParsedResumeData

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(
    r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL
)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_EMPTY_ARRAY_COMMA_RE = re.compile(r"\[\s*,\s*\]")
_OBJECT_SPAN_RE = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class ParseResult:
    """Outcome of turning resume text into structured data.

    Attributes:
        success: Whether a schema-valid ParsedResumeData was produced.
        data: The parsed resume (None on failure).
        error: Failure reason, e.g. ``"invalid_json"`` or ``"timeout"``.
        raw_response: Raw parser output, kept for debugging.
    """

    success: bool
    data: ParsedResumeData | None = field(default=None)
    error: str | None = None
    raw_response: str = ""


class StructuredParser(Protocol):
    """Anything that turns extracted resume text into structured data."""

    async def parse(self, text: str) -> ParseResult: ...


def sanitize_resume_text(text: str) -> str:
    """Remove curly braces, which prompt templates treat as placeholders."""
    return text.replace("{", "").replace("}", "")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping JSON content.

    Handles ``\\`\\`\\`json ... \\`\\`\\``` and bare ``\\`\\`\\` ... \\`\\`\\```
    wrappers.  If no code fence is detected, returns the text stripped.
    """
    text = text.strip()
    match = _CODE_FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def repair_json(text: str) -> str:
    """Drop trailing commas before ``}``/``]`` and commas in empty arrays."""
    text = _EMPTY_ARRAY_COMMA_RE.sub("[]", text)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _validate(candidate: str) -> ParsedResumeData:
    return ParsedResumeData.model_validate(json.loads(candidate))


def parse_model_output(raw: str) -> ParseResult:
    """Read a model's JSON answer into ParsedResumeData.

    Two attempts: the fence-stripped, comma-repaired text as-is, then only the
    outermost ``{...}`` span (models sometimes add prose around the JSON).

    Returns:
        ParseResult; never raises.
    """
    cleaned = repair_json(strip_code_fences(raw))

    try:
        return ParseResult(success=True, data=_validate(cleaned), raw_response=raw)
    except json.JSONDecodeError as e:
        logger.debug("First JSON parse attempt failed: %s", e)
    except ValidationError as e:
        logger.warning("Parsed resume failed schema validation: %s", str(e)[:200])
        return ParseResult(
            success=False, error=f"validation_error: {e}", raw_response=raw
        )

    match = _OBJECT_SPAN_RE.search(cleaned)
    if match is None:
        logger.warning("Model output contains no JSON object")
        return ParseResult(success=False, error="invalid_json", raw_response=raw)

    try:
        return ParseResult(
            success=True, data=_validate(match.group(0)), raw_response=raw
        )
    except json.JSONDecodeError:
        logger.warning("Model returned invalid JSON format")
        return ParseResult(success=False, error="invalid_json", raw_response=raw)
    except ValidationError as e:
        logger.warning("Parsed resume failed schema validation: %s", str(e)[:200])
        return ParseResult(
            success=False, error=f"validation_error: {e}", raw_response=raw
        )
