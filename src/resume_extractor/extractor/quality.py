"""Sufficiency rules for extracted text.

Decides whether extraction output is usable or whether the next fallback
strategy should be tried.  Two validation levels:

- ``passes_sufficiency_check``: native text-layer output.  A clean parse is
  not trusted on its own, because scanned resumes often carry an empty or
  near-empty text layer.
- ``passes_ocr_check``: OCR output, which has no per-page structure, so only
  non-empty text is required.

``normalize_whitespace`` is the shared cleanup applied before either check.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_BLANK_LINES = re.compile(r"\n\s*\n")
_LINE_EDGES = re.compile(r" *\n *")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs and blank-line runs, then trim.

    Runs of spaces/tabs become one space, any run of blank lines becomes a
    single blank line (the page separator), and both ends are stripped.
    """
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _LINE_EDGES.sub("\n", text)
    text = _BLANK_LINES.sub("\n\n", text)
    return text.strip()


def passes_sufficiency_check(
    text: str,
    first_page_text: str,
    min_chars: int,
) -> bool:
    """Check whether native extraction produced enough text to skip OCR.

    Both conditions must hold:

    1. **Minimum content**: cleaned text is longer than *min_chars*.
    2. **First page**: the first page alone yielded non-empty text.  Image-only
       resumes with a stray text footer on a later page fail here.

    Args:
        text: Normalized text of the whole document.
        first_page_text: Raw joined text of page 1.
        min_chars: Exclusive lower bound on ``len(text)``.

    Returns:
        True if both checks pass.
    """
    if len(text) <= min_chars:
        logger.warning(
            "Sufficiency check failed (minimum content): %d chars <= %d",
            len(text),
            min_chars,
        )
        return False

    if not first_page_text.strip():
        logger.warning("Sufficiency check failed: first page has no text layer")
        return False

    return True


def passes_ocr_check(text: str) -> bool:
    """OCR output only needs to be non-blank."""
    if not text or not text.strip():
        logger.warning("OCR check failed: empty or whitespace-only text")
        return False
    return True


def passes_parse_threshold(text: str, min_chars: int) -> bool:
    """Whether text is long enough to be worth sending to a structured parser."""
    return len(text.strip()) > min_chars
