"""Tests for the native PyMuPDF text-layer tier."""

import threading
import time

import pytest
from conftest import (
    RESUME_LINES,
    FakeDocument,
    FakePage,
    HangingOpener,
    build_encrypted_pdf,
    build_pdf,
)

from resume_extractor.extractor.native import NativeExtractor
from resume_extractor.extractor.types import ExtractionMethod, FailureKind

FIRST_PAGE = (
    "Hello world, this is a long enough first page to pass the sufficiency bar for sure."
)


@pytest.mark.asyncio
async def test_two_page_text_pdf(extraction_settings):
    data = build_pdf([FIRST_PAGE, "Second page with more experience details."])

    result = await NativeExtractor(extraction_settings).extract(data)

    assert result.success is True
    assert result.page_count == 2
    assert result.method is ExtractionMethod.NATIVE
    assert result.text.startswith("Hello world, this is a long enough first page")
    assert "\n\nSecond page" in result.text
    assert result.metadata["usedOcr"] is False
    assert result.metadata["processedPages"] == 2


@pytest.mark.asyncio
async def test_multiline_page_is_joined_with_spaces(extraction_settings, resume_pdf):
    result = await NativeExtractor(extraction_settings).extract(resume_pdf)

    assert result.success is True
    assert result.text == " ".join(" ".join(RESUME_LINES).split())


@pytest.mark.asyncio
async def test_image_only_pdf_is_insufficient(extraction_settings, scanned_pdf):
    result = await NativeExtractor(extraction_settings).extract(scanned_pdf)

    assert result.success is False
    assert result.failure is FailureKind.INSUFFICIENT_TEXT
    assert result.error == "insufficient text"
    assert result.page_count == 1
    assert result.metadata["textLength"] == 0


@pytest.mark.asyncio
async def test_short_text_layer_is_insufficient(extraction_settings):
    result = await NativeExtractor(extraction_settings).extract(build_pdf(["Jane Doe"]))

    assert result.failure is FailureKind.INSUFFICIENT_TEXT


@pytest.mark.asyncio
async def test_text_only_after_first_page_is_insufficient(extraction_settings):
    data = build_pdf(["", FIRST_PAGE])

    result = await NativeExtractor(extraction_settings).extract(data)

    assert result.failure is FailureKind.INSUFFICIENT_TEXT
    assert result.page_count == 2


@pytest.mark.asyncio
async def test_encrypted_pdf(extraction_settings):
    data = build_encrypted_pdf(FIRST_PAGE)

    result = await NativeExtractor(extraction_settings).extract(data)

    assert result.success is False
    assert result.failure is FailureKind.ENCRYPTED
    assert "password protected" in result.error


@pytest.mark.asyncio
async def test_open_failure_is_corrupt(extraction_settings):
    def broken(data):
        raise RuntimeError("no objects found")

    result = await NativeExtractor(extraction_settings, open_document=broken).extract(
        b"%PDF-1.4 garbage"
    )

    assert result.failure is FailureKind.CORRUPT
    assert "no objects found" in result.error


@pytest.mark.asyncio
async def test_zero_page_document_is_insufficient(extraction_settings):
    doc = FakeDocument([])

    result = await NativeExtractor(
        extraction_settings, open_document=lambda data: doc
    ).extract(b"%PDF")

    assert result.failure is FailureKind.INSUFFICIENT_TEXT
    assert result.page_count == 0
    assert doc.closed is True


@pytest.mark.asyncio
async def test_failing_page_is_skipped(extraction_settings):
    doc = FakeDocument(
        [
            FakePage(FIRST_PAGE),
            FakePage(error=RuntimeError("bad xref")),
            FakePage("Third page text"),
        ]
    )

    result = await NativeExtractor(
        extraction_settings, open_document=lambda data: doc
    ).extract(b"%PDF")

    assert result.success is True
    assert result.page_count == 3
    assert result.metadata["processedPages"] == 2
    assert result.metadata["totalPages"] == 3
    assert result.text.endswith("Third page text")
    assert doc.closed is True


@pytest.mark.asyncio
async def test_encrypted_fake_document_is_closed(extraction_settings):
    doc = FakeDocument([FakePage(FIRST_PAGE)], needs_pass=True)

    result = await NativeExtractor(
        extraction_settings, open_document=lambda data: doc
    ).extract(b"%PDF")

    assert result.failure is FailureKind.ENCRYPTED
    assert doc.closed is True


@pytest.mark.asyncio
async def test_hung_parser_times_out(extraction_settings):
    opener = HangingOpener()
    extractor = NativeExtractor(extraction_settings, open_document=opener)

    started = time.monotonic()
    try:
        result = await extractor.extract(b"%PDF", time_limit=0.2)
    finally:
        opener.release.set()
    elapsed = time.monotonic() - started

    assert result.failure is FailureKind.TIMEOUT
    assert "timed out after 0.2 seconds" in result.error
    assert elapsed < 2.0


@pytest.mark.asyncio
async def test_abandoned_parser_runs_on_daemon_thread(extraction_settings):
    seen = []

    def opener(data):
        seen.append(threading.current_thread())
        return hanging(data)

    hanging = HangingOpener()
    extractor = NativeExtractor(extraction_settings, open_document=opener)
    try:
        result = await extractor.extract(b"%PDF", time_limit=0.1)
    finally:
        hanging.release.set()

    assert result.failure is FailureKind.TIMEOUT
    assert seen and seen[0].daemon is True


@pytest.mark.asyncio
async def test_parser_error_after_open_is_corrupt(extraction_settings):
    class BrokenDocument(FakeDocument):
        @property
        def needs_pass(self):
            raise ValueError("bad trailer")

        @needs_pass.setter
        def needs_pass(self, value):
            pass

    doc = BrokenDocument([FakePage(FIRST_PAGE)])
    extractor = NativeExtractor(extraction_settings, open_document=lambda data: doc)
    result = await extractor.extract(b"%PDF", time_limit=1.0)

    assert result.failure is FailureKind.CORRUPT
    assert result.error == "PDF parsing failed: bad trailer"
    assert doc.closed is True
