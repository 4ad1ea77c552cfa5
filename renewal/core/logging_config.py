"""
Logging setup and the structured payment log.

WHAT:
- configure_logging(): console format for the whole process plus two
  append-only diagnostic files, one for subscription creation/polling
  and one for gateway webhooks.
- PaymentLog: the ``log(level, message, fields)`` interface handed to
  payment operations so they never touch a sink directly.

HOW: Plain stdlib logging. Fields travel on the record as ``extra`` and
the diagnostic formatter renders them as JSON after the message:

    2024-06-01T12:00:00.000Z - Invoice found {"invoice_id": 7}

File sinks are best effort. A directory that cannot be created only
produces a warning, and FileHandler errors at emit time go through
logging's own handleError instead of reaching the request.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from renewal.core.config import Settings
from renewal.middleware.request_context import get_request_context

SUBSCRIPTION_LOGGER = "renewal.payments.subscription"
WEBHOOK_LOGGER = "renewal.payments.webhook"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


class DiagnosticFormatter(logging.Formatter):
    """One line per record: ISO-8601 UTC timestamp, message, JSON fields."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(message)s")

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "fields", None)
        if fields:
            line = f"{line} {json.dumps(fields, default=str, ensure_ascii=False, sort_keys=True)}"
        return line


def attach_file_sink(logger_name: str, path: Union[str, Path]) -> Optional[logging.Handler]:
    """
    Attach an append-only diagnostic file to a logger.

    Calling it twice for the same file returns the existing handler.

    Args:
        logger_name: Logger that should write to the file
        path: Target file; parent directories are created

    Returns:
        The file handler, or None when the directory is not writable
    """
    path = Path(path)
    target = logging.getLogger(logger_name)

    for handler in target.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(path.resolve()):
            return handler

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Diagnostic log disabled for {logger_name}: {e}")
        return None

    handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    handler.setFormatter(DiagnosticFormatter())
    handler.setLevel(logging.DEBUG)
    target.addHandler(handler)
    target.setLevel(logging.DEBUG)
    return handler


def configure_logging(config: Settings) -> None:
    """
    Configure process logging.

    Called from the startup hook, after settings are loaded.
    """
    logging.basicConfig(
        format=CONSOLE_FORMAT,
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    )
    # Request logs for every gateway call are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    log_dir = Path(config.LOG_DIR)
    attach_file_sink(SUBSCRIPTION_LOGGER, log_dir / config.SUBSCRIPTION_LOG_FILE)
    attach_file_sink(WEBHOOK_LOGGER, log_dir / config.WEBHOOK_LOG_FILE)


class PaymentLog:
    """
    Structured logging interface for payment operations.

    WHAT: Wraps a stdlib logger with ``log(level, message, fields)``.
    The current request ID, when there is one, is added to the fields.

    Example:
        >>> log = PaymentLog(SUBSCRIPTION_LOGGER)
        >>> log.info("Invoice found", invoice_id=7)
    """

    def __init__(self, target: Union[str, logging.Logger]):
        self._logger = logging.getLogger(target) if isinstance(target, str) else target

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, message: str, fields: Optional[Dict[str, Any]] = None) -> None:
        merged = dict(fields or {})
        context = get_request_context()
        if context is not None:
            merged.setdefault("request_id", context.request_id)
        self._logger.log(level, message, extra={"fields": merged})

    def debug(self, message: str, **fields: Any) -> None:
        self.log(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log(logging.ERROR, message, fields)
