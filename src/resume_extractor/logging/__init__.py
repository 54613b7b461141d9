"""Logging configuration -- JSON file + console handlers with secret redaction."""

from .setup import SecretRedactionFilter, setup_logging

__all__ = ["SecretRedactionFilter", "setup_logging"]
