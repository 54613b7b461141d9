"""Server-side OCR route for untrusted (browser) callers.

The browser cannot hold the OCR provider's key, so it posts the PDF here and
this route performs the remote OCR call with the server-held key.  The upload
limits are re-checked at this boundary and violations return HTTP 400.
"""

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse

from resume_extractor.api.dependencies import ExtractionSettingsDep, ServerOcrDep
from resume_extractor.extractor.types import PDF_MIME_TYPE, ExtractionMethod
from resume_extractor.extractor.validation import format_size_limit

logger = logging.getLogger(__name__)

ocr_router = APIRouter(prefix="/api/ai/resume", tags=["Resume OCR"])


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=400)


@ocr_router.post("/ocr")
async def ocr_resume(
    settings: ExtractionSettingsDep,
    extractor: ServerOcrDep,
    file: UploadFile | None = File(None),
) -> JSONResponse:
    """OCR an uploaded PDF with the server-held key."""
    try:
        if file is None:
            return _bad_request("No file provided")

        if file.content_type != PDF_MIME_TYPE:
            return _bad_request("File must be a PDF")

        too_large = f"File size must be less than {format_size_limit(settings.max_file_bytes)}"
        if file.size is not None and file.size > settings.max_file_bytes:
            return _bad_request(too_large)

        data = await file.read()
        if len(data) > settings.max_file_bytes:
            return _bad_request(too_large)
        if not data:
            return _bad_request("PDF file is empty")

        filename = file.filename or "resume.pdf"
        logger.info("Server-side OCR requested for %s (%d bytes)", filename, len(data))

        result = await extractor.extract(data, filename)

        metadata = {**result.metadata, "serverSide": True}
        if result.success:
            metadata["extractionMethod"] = ExtractionMethod.OCR_LOCAL.value
            return JSONResponse(
                {
                    "success": True,
                    "text": result.text,
                    "pageCount": result.page_count,
                    "metadata": metadata,
                }
            )

        logger.warning("Server-side OCR failed for %s: %s", filename, result.error)
        return JSONResponse(
            {"success": False, "error": result.error, "metadata": metadata},
            status_code=400,
        )

    except Exception as e:
        logger.exception("Server-side OCR processing failed")
        return JSONResponse(
            {
                "success": False,
                "error": "Server-side OCR processing failed",
                "details": str(e),
            },
            status_code=500,
        )
