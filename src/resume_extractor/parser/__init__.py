"""Structured resume parsing -- collaborator interface and output schemas."""

from .schemas import ParsedResumeData
from .service import (
    ParseResult,
    StructuredParser,
    parse_model_output,
    sanitize_resume_text,
    strip_code_fences,
)

__all__ = [
    "ParseResult",
    "ParsedResumeData",
    "StructuredParser",
    "parse_model_output",
    "sanitize_resume_text",
    "strip_code_fences",
]
