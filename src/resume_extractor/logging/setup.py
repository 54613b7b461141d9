"""Process-wide logging for the extractor, the API and the CLI.

Records go to a rotating JSON file (machine-readable, DEBUG and up) and to a
plain-text console stream (INFO and up).  A shared SecretRedactionFilter masks
configured secrets such as the OCR API key before any handler formats a
record, and the chattier third-party loggers (httpx request lines, httpcore
connection churn, multipart parsing) are held at WARNING.

Entry points call setup_logging() once at startup; library modules only ever
do ``logger = logging.getLogger(__name__)``.
"""

import logging
import logging.handlers
from collections.abc import Iterable
from pathlib import Path

from pythonjsonlogger.json import JsonFormatter

LOG_FILENAME = "extraction.log"

_NOISY_LOGGERS = ("httpx", "httpcore", "multipart", "python_multipart")

_REDACTED = "***"


class SecretRedactionFilter(logging.Filter):
    """Replace known secret values in rendered log messages."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self._secrets:
            redacted = redacted.replace(secret, _REDACTED)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _json_file_handler(
    log_dir: str, level: int, max_bytes: int, backup_count: int
) -> logging.Handler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=str(directory / LOG_FILENAME),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(
        JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "component",
            },
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def setup_logging(
    log_dir: str = "logs",
    log_level_file: int = logging.DEBUG,
    log_level_console: int = logging.INFO,
    max_bytes: int = 10_485_760,
    backup_count: int = 5,
    log_to_file: bool = True,
    secrets: Iterable[str] = (),
) -> None:
    """Install the JSON file and console handlers on the root logger.

    Safe to call more than once: previously installed root handlers are
    dropped first.

    Args:
        log_dir: Directory that receives extraction.log (created if missing).
        log_level_file: Minimum level written to the JSON file.
        log_level_console: Minimum level written to the console.
        max_bytes: Rotation threshold for the JSON file.
        backup_count: Rotated files kept alongside the live one.
        log_to_file: Set False for one-shot CLI runs that only need the console.
        secrets: Values to mask wherever they appear in a log message.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    handlers = [_console_handler(log_level_console)]
    if log_to_file:
        handlers.insert(
            0, _json_file_handler(log_dir, log_level_file, max_bytes, backup_count)
        )

    redaction = SecretRedactionFilter(secrets)
    for handler in handlers:
        handler.addFilter(redaction)
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
