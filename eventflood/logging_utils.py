#!/usr/bin/env python3
"""
eventflood - Logging Utilities

Structured JSON logging (NDJSON) or plain text logging for load runs, with a
thread-local correlation ID so lines emitted from batch worker threads can be
attributed to their batch.

Usage:
    from eventflood.logging_utils import setup_json_logging

    logger = setup_json_logging(service_name="eventflood", version="1.0.0")
    logger.info("Run started", extra={"total_events": 1000})

Environment Variables:
    LOG_JSON_ENABLED: Enable JSON logging (default: false)
    LOG_LEVEL: Logging level (default: INFO)

Author: eventflood Development Team
License: MIT
Version: 1.0.0
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional


# Attributes present on every LogRecord; anything else came in via `extra={}`
_RESERVED_ATTRS = frozenset([
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
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "correlation_id",
])


class CorrelationID:
    """Thread-local storage for correlation IDs."""
    _storage = threading.local()

    @staticmethod
    def set(cid):
        CorrelationID._storage.id = cid

    @staticmethod
    def get():
        return getattr(CorrelationID._storage, 'id', 'system')

    @staticmethod
    def clear():
        CorrelationID._storage.id = 'system'


class CorrelationIdFilter(logging.Filter):
    """Automatically adds correlation ID to all log records."""
    def filter(self, record):
        if not getattr(record, "correlation_id", None):
            record.correlation_id = CorrelationID.get()
        return True


class NDJSONFormatter(logging.Formatter):
    """
    Formatter that outputs each log record as one JSON object per line.

    Fields included:
    - timestamp: ISO 8601 format with timezone
    - level, message, logger, module, function, line, thread
    - service, version: identify the emitting tool
    - correlation_id: batch tag, or "system" outside a batch
    - error: exception details (if exception present)
    - any fields passed via ``extra={}``
    """

    def __init__(self, service_name: str, version: str):
        super().__init__()
        self.service_name = service_name
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": threading.get_ident(),
            "service": self.service_name,
            "version": self.version,
            "correlation_id": getattr(record, "correlation_id", None) or "system",
        }

        if record.exc_info:
            log_entry["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        return json.dumps(log_entry, default=str)


def _json_enabled() -> bool:
    return os.getenv("LOG_JSON_ENABLED", "false").lower() in ("true", "1", "yes", "on")


def setup_json_logging(
    service_name: str,
    version: str,
    level: str = "INFO",
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Configure the root logger for a run.

    Uses NDJSON when LOG_JSON_ENABLED is truthy, otherwise a text format that
    carries the correlation ID. Safe to call repeatedly: existing root
    handlers are replaced.

    Args:
        service_name: Name written into JSON records
        version: Version written into JSON records
        level: Logging level as string; LOG_LEVEL overrides it
        stream: Output stream for the handler (default: sys.stderr)

    Returns:
        The configured root logger
    """
    log_level = os.getenv("LOG_LEVEL", level).upper()

    logger = logging.getLogger()
    logger.handlers.clear()
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    handler = logging.StreamHandler(stream)
    handler.setLevel(logger.level)
    handler.addFilter(CorrelationIdFilter())

    json_enabled = _json_enabled()
    if json_enabled:
        handler.setFormatter(NDJSONFormatter(service_name=service_name, version=version))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(levelname)s - [%(correlation_id)s] - %(message)s"
        ))

    logger.addHandler(handler)

    if json_enabled:
        logger.debug(f"JSON logging enabled for service={service_name} version={version}")
    else:
        logger.debug(f"Standard logging enabled for service={service_name}")

    return logger


def get_logger(name: str = __name__) -> logging.Logger:
    """Get a named logger that inherits the root configuration."""
    return logging.getLogger(name)
