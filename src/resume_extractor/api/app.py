"""FastAPI application hosting the first-party OCR endpoint.

Serve with any ASGI server, e.g. ``uvicorn resume_extractor.api.app:app``.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from resume_extractor.api.routes import ocr_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own one outbound HTTP client for the lifetime of the app."""
    async with httpx.AsyncClient() as client:
        app.state.http_client = client
        logger.info("OCR API started")
        yield
    logger.info("OCR API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Resume Text Extractor",
        description="Server-side OCR for resume uploads",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(ocr_router)
    return app


app = create_app()
