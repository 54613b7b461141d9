"""Shared fixtures: synthetic PDFs, settings and an in-process OCR service."""

from __future__ import annotations

import threading
from collections.abc import Callable

import httpx
import pymupdf
import pytest

from resume_extractor.config.settings import ExtractionSettings, OcrSettings

OCR_ENDPOINT = "https://ocr.test/parse/image"
LOCAL_OCR_ENDPOINT = "http://testserver/api/ai/resume/ocr"

RESUME_LINES = [
    "Jane Doe",
    "Senior Software Engineer",
    "jane.doe@example.com | +1 555 0100",
    "Experience",
    "Acme Corp, Staff Engineer, 2019-01 to present",
    "Built the document ingestion platform in Python.",
    "Education",
    "State University, BSc Computer Science, 2014",
]


def build_pdf(pages: list[str]) -> bytes:
    """Render one page per entry; an empty string gives a page with no text layer."""
    doc = pymupdf.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


def build_encrypted_pdf(text: str) -> bytes:
    doc = pymupdf.open()
    doc.new_page().insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes(
        encryption=pymupdf.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="user",
    )
    doc.close()
    return data


def ocr_payload(*texts: str) -> dict:
    """An OCR.space success body with one ParsedResults entry per text."""
    return {
        "ParsedResults": [{"ParsedText": t} for t in texts],
        "OCRExitCode": 1,
        "IsErroredOnProcessing": False,
    }


# ---------------------------------------------------------------------------
# Fake document objects for the native tier
# ---------------------------------------------------------------------------


class FakePage:
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self._text = text
        self._error = error

    def get_text(self, mode: str, flags: int = 0):
        if self._error is not None:
            raise self._error
        return [(0, 0, 0, 0, word, 0, 0, i) for i, word in enumerate(self._text.split())]


class FakeDocument:
    def __init__(self, pages: list[FakePage], needs_pass: bool = False) -> None:
        self._pages = pages
        self.needs_pass = needs_pass
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def load_page(self, number: int) -> FakePage:
        return self._pages[number]

    def close(self) -> None:
        self.closed = True


class HangingOpener:
    """Document opener that blocks until released, simulating a hung parser."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.calls = 0

    def __call__(self, data: bytes) -> FakeDocument:
        self.calls += 1
        self.release.wait(timeout=10)
        return FakeDocument([FakePage(" ".join(RESUME_LINES))])


# ---------------------------------------------------------------------------
# In-process OCR service
# ---------------------------------------------------------------------------


Responder = httpx.Response | Callable[[httpx.Request], httpx.Response]


class OcrServiceStub:
    """Records requests and replays queued responses; the last one repeats."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[Responder] = [httpx.Response(200, json=ocr_payload("OCR text"))]

    @property
    def calls(self) -> int:
        return len(self.requests)

    def respond(self, *responses: Responder) -> None:
        self._responses = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if callable(responder):
            return responder(request)
        return responder

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def extraction_settings() -> ExtractionSettings:
    return ExtractionSettings(
        max_file_bytes=1_048_576,
        native_timeout_seconds=5.0,
        min_native_chars=50,
        min_parse_chars=100,
        parse_timeout_seconds=5.0,
        execution_context="server",
        browser_remote_ocr=True,
    )


@pytest.fixture
def ocr_settings() -> OcrSettings:
    return OcrSettings(
        endpoint=OCR_ENDPOINT,
        api_key="test-key",
        language="eng",
        engine=2,
        timeout_seconds=5.0,
        local_endpoint=LOCAL_OCR_ENDPOINT,
    )


@pytest.fixture
def ocr_service() -> OcrServiceStub:
    return OcrServiceStub()


@pytest.fixture
def resume_pdf() -> bytes:
    return build_pdf(["\n".join(RESUME_LINES)])


@pytest.fixture
def scanned_pdf() -> bytes:
    """A one-page PDF with no text layer, standing in for a scanned resume."""
    return build_pdf([""])
