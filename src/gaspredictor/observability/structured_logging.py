"""
Structured logging for Gas Predictor.

JSON-formatted logging with correlation IDs so that every line written while
serving a request can be tied back to that request.

Usage:
    from gaspredictor.observability import add_correlation_id

    with add_correlation_id("req_abc123"):
        logger.info("Processing")  # Will include correlation_id in log
"""

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variable for correlation ID
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# LogRecord attributes that are not user-supplied context
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "message",
        "thread",
        "threadName",
        "taskName",
    }
)


def get_correlation_id() -> str | None:
    """Get current correlation ID."""
    return _correlation_id.get()


@contextmanager
def add_correlation_id(correlation_id: str | None = None) -> Iterator[str]:
    """
    Context manager to add correlation ID to logs.

    Args:
        correlation_id: Correlation ID (auto-generated if not provided)

    Yields:
        The correlation ID
    """
    cid = correlation_id or str(uuid.uuid4())[:8]
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` fields attached to a log record."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """
    JSON-formatted log formatter with structured fields.

    Includes timestamp, level, logger name, message, correlation ID (if set),
    exception info (if present) and any ``extra=`` context fields.
    """

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        log_data.update(record_context(record))
        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter with optional correlation ID.

    Format: [timestamp] [level] [logger] [correlation_id] message
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        parts = [f"[{timestamp}]", f"[{record.levelname.ljust(8)}]", f"[{record.name}]"]

        correlation_id = get_correlation_id()
        if correlation_id:
            parts.append(f"[{correlation_id}]")

        parts.append(record.getMessage())
        message = " ".join(parts)

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message
