"""HTTP API -- the first-party OCR endpoint."""

from .app import create_app

__all__ = ["create_app"]
