"""Tests for the server-side OCR route, using dependency overrides."""

import httpx
import pytest
from conftest import LOCAL_OCR_ENDPOINT, ocr_payload
from fastapi.testclient import TestClient

from resume_extractor.api import create_app
from resume_extractor.api.dependencies import (
    get_extraction_settings,
    get_http_client,
    get_ocr_settings,
    get_server_ocr_extractor,
)
from resume_extractor.extractor import (
    ExecutionContext,
    ExtractionResult,
    FailureKind,
    UploadedFile,
)
from resume_extractor.extractor.native import NativeExtractor
from resume_extractor.extractor.ocr_local import LocalOcrExtractor
from resume_extractor.extractor.ocr_remote import RemoteOcrExtractor
from resume_extractor.extractor.service import TextExtractionOrchestrator

OCR_PATH = "/api/ai/resume/ocr"


class FakeServerOcr:
    def __init__(self, result: ExtractionResult | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[bytes, str]] = []

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        self.calls.append((data, filename))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_ocr() -> FakeServerOcr:
    return FakeServerOcr(
        ExtractionResult(
            success=True,
            text="Server OCR text",
            page_count=1,
            metadata={"extractionMethod": "ocr-remote", "usedOcr": True},
        )
    )


@pytest.fixture
def app(extraction_settings, fake_ocr):
    app = create_app()
    app.dependency_overrides[get_extraction_settings] = lambda: extraction_settings
    app.dependency_overrides[get_server_ocr_extractor] = lambda: fake_ocr
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def test_success(client, fake_ocr):
    response = client.post(
        OCR_PATH, files={"file": ("cv.pdf", b"%PDF-1.4 scanned", "application/pdf")}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["text"] == "Server OCR text"
    assert body["pageCount"] == 1
    assert body["metadata"]["serverSide"] is True
    assert body["metadata"]["extractionMethod"] == "ocr-local"
    assert fake_ocr.calls == [(b"%PDF-1.4 scanned", "cv.pdf")]


def test_missing_file(client, fake_ocr):
    response = client.post(OCR_PATH)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No file provided"}
    assert fake_ocr.calls == []


def test_wrong_content_type(client, fake_ocr):
    response = client.post(OCR_PATH, files={"file": ("cv.txt", b"hello", "text/plain")})

    assert response.status_code == 400
    assert response.json()["error"] == "File must be a PDF"
    assert fake_ocr.calls == []


def test_oversized_file(client, fake_ocr, extraction_settings):
    data = b"%PDF" + b"0" * extraction_settings.max_file_bytes

    response = client.post(OCR_PATH, files={"file": ("cv.pdf", data, "application/pdf")})

    assert response.status_code == 400
    assert response.json()["error"] == "File size must be less than 1MB"
    assert fake_ocr.calls == []


def test_empty_file(client, fake_ocr):
    response = client.post(OCR_PATH, files={"file": ("cv.pdf", b"", "application/pdf")})

    assert response.status_code == 400
    assert response.json()["error"] == "PDF file is empty"


def test_ocr_failure_returns_400(client, fake_ocr):
    fake_ocr.result = ExtractionResult.failed(
        FailureKind.NO_TEXT_FOUND, "OCR extraction failed: No text found in the document"
    )

    response = client.post(OCR_PATH, files={"file": ("cv.pdf", b"%PDF", "application/pdf")})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "OCR extraction failed: No text found in the document"
    assert body["metadata"]["serverSide"] is True


def test_unexpected_error_returns_500(client, fake_ocr):
    fake_ocr.error = RuntimeError("disk full")

    response = client.post(OCR_PATH, files={"file": ("cv.pdf", b"%PDF", "application/pdf")})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Server-side OCR processing failed",
        "details": "disk full",
    }


def test_missing_server_key_is_not_configured(app, ocr_settings, ocr_service):
    del app.dependency_overrides[get_server_ocr_extractor]
    keyless = ocr_settings.model_copy(update={"api_key": ""})
    app.dependency_overrides[get_ocr_settings] = lambda: keyless
    app.dependency_overrides[get_http_client] = lambda: ocr_service.client()

    response = TestClient(app).post(
        OCR_PATH, files={"file": ("cv.pdf", b"%PDF", "application/pdf")}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "OCR service not configured"
    assert ocr_service.calls == 0


@pytest.mark.asyncio
async def test_browser_cascade_through_endpoint(
    extraction_settings, ocr_settings, ocr_service, scanned_pdf
):
    """Keyless remote OCR is refused, then the first-party endpoint succeeds."""
    provider = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=ocr_payload("Scanned Resume Text"))
        )
    )
    app = create_app()
    app.dependency_overrides[get_extraction_settings] = lambda: extraction_settings
    app.dependency_overrides[get_server_ocr_extractor] = lambda: RemoteOcrExtractor(
        ocr_settings, provider, api_key="server-key", require_api_key=True
    )
    ocr_service.respond(httpx.Response(403, text="Forbidden"))

    async with provider, ocr_service.client() as browser_client, httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as app_client:
        orchestrator = TextExtractionOrchestrator(
            extraction_settings,
            NativeExtractor(extraction_settings),
            remote_ocr=RemoteOcrExtractor(ocr_settings, browser_client),
            local_ocr=LocalOcrExtractor(
                LOCAL_OCR_ENDPOINT, app_client, extraction_settings.max_file_bytes
            ),
            context=ExecutionContext.BROWSER,
        )
        result = await orchestrator.extract_text(UploadedFile(data=scanned_pdf))

    assert result.success is True
    assert result.text == "Scanned Resume Text"
    assert result.metadata["extractionMethod"] == "ocr-local"
    assert result.metadata["serverSide"] is True
    assert ocr_service.calls == 1
