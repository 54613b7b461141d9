"""Dependency injection providers for the OCR API."""

from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends, Request

from resume_extractor.config.settings import ExtractionSettings, OcrSettings
from resume_extractor.extractor.ocr_remote import RemoteOcrExtractor


@lru_cache()
def get_extraction_settings() -> ExtractionSettings:
    return ExtractionSettings()


@lru_cache()
def get_ocr_settings() -> OcrSettings:
    return OcrSettings()


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared client created in the app lifespan."""
    return request.app.state.http_client


def get_server_ocr_extractor(
    ocr_settings: Annotated[OcrSettings, Depends(get_ocr_settings)],
    http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> RemoteOcrExtractor:
    """Remote OCR bound to the server-held key; refuses the keyless free tier."""
    return RemoteOcrExtractor(
        ocr_settings,
        http_client,
        api_key=ocr_settings.api_key,
        require_api_key=True,
    )


ExtractionSettingsDep = Annotated[ExtractionSettings, Depends(get_extraction_settings)]
ServerOcrDep = Annotated[RemoteOcrExtractor, Depends(get_server_ocr_extractor)]
