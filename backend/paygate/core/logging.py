"""Structured logging with correlation IDs.

Every record carries the request correlation ID and, when a span is active,
the trace and span IDs. Extra fields whose names look like credentials or
card material are masked before they are written.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from paygate.core.tracing import current_ids, get_trace_id

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "correlation_id"}

SENSITIVE_FIELDS = frozenset((
    "card", "card_token", "cardToken", "number", "secret", "api_key",
    "signature", "salt", "authorization",
))

MASK = "***"

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(correlation_id)s] %(message)s"

# Libraries that log every request or query at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "stripe")


def get_correlation_id() -> str:
    """Return the correlation ID of the current request.

    Outside a request the trace ID is used when a span is active, otherwise
    a fresh ID is generated and kept for the rest of the context.
    """
    cid = correlation_id_var.get()
    if cid is not None:
        return cid
    trace_id = get_trace_id()
    if trace_id:
        return trace_id
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def mask_sensitive(value: Any) -> Any:
    """Recursively replace values stored under sensitive keys.

    Args:
        value: Arbitrary log payload (dicts and lists are walked)

    Returns:
        Copy of the payload with sensitive values masked
    """
    if isinstance(value, dict):
        return {
            k: MASK if k in SENSITIVE_FIELDS else mask_sensitive(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [mask_sensitive(v) for v in value]
    return value


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, include_stack_trace: bool = True):
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        trace_id, span_id = current_ids()
        if trace_id:
            entry["trace_id"] = trace_id
            entry["span_id"] = span_id

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
            }
            if self.include_stack_trace and exc_tb is not None:
                entry["exception"]["stack_trace"] = traceback.format_exception(
                    exc_type, exc_value, exc_tb
                )

        extra = self._extra_fields(record)
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> dict:
        fields = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            fields[key] = MASK if key in SENSITIVE_FIELDS else mask_sensitive(value)
        return fields


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the current correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_stack_trace: bool = True,
) -> None:
    """Route all logging to stdout.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of plain text
        include_stack_trace: Include stack traces for logged exceptions
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter(include_stack_trace=include_stack_trace)
        if json_format
        else logging.Formatter(TEXT_FORMAT)
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    **extra: Any,
) -> None:
    """Log an error with correlation ID and optional exception.

    Args:
        logger: Logger instance
        message: Error message
        exception: Optional exception to log with its traceback
        **extra: Additional context fields
    """
    extra["correlation_id"] = get_correlation_id()
    logger.error(message, exc_info=exception, extra=extra)


def log_warning(logger: logging.Logger, message: str, **extra: Any) -> None:
    extra["correlation_id"] = get_correlation_id()
    logger.warning(message, extra=extra)


def log_info(logger: logging.Logger, message: str, **extra: Any) -> None:
    extra["correlation_id"] = get_correlation_id()
    logger.info(message, extra=extra)
