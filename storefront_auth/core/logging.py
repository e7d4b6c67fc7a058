"""JSON line logging bound to the request being served.

Every record carries the correlation id of the current request and, once
the access-token gate has accepted it, the admin id. Secrets never go
through ``extra``; only the keys in ``JsonLogFormatter.extra_keys`` are
emitted.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterable, TextIO

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")
ADMIN_ID_CTX: ContextVar[str] = ContextVar("admin_id", default="")

DEFAULT_EXTRA_KEYS = (
    "path",
    "method",
    "status_code",
    "client_ip",
    "admin_id",
    "sweeper",
    "removed",
)

# Loggers that would duplicate the request log or flood it.
QUIET_LOGGERS = ("uvicorn.access", "pymongo", "httpx", "httpcore")


class JsonLogFormatter(logging.Formatter):
    """One compact JSON object per record."""

    def __init__(self, extra_keys: Iterable[str] = DEFAULT_EXTRA_KEYS) -> None:
        super().__init__()
        self.extra_keys = tuple(extra_keys)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": CORRELATION_ID_CTX.get(),
        }
        bound_admin = ADMIN_ID_CTX.get()
        if bound_admin:
            payload["admin_id"] = bound_admin

        for key in self.extra_keys:
            value = getattr(record, key, None)
            if value is not None and value != "":
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", *, stream: TextIO | None = None) -> None:
    """Route the root logger to a single JSON handler."""
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(handler)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_correlation_id(correlation_id: str) -> None:
    """Start a request context; the admin binding of a previous request is dropped."""
    CORRELATION_ID_CTX.set(correlation_id)
    ADMIN_ID_CTX.set("")


def set_admin_id(admin_id: str) -> None:
    ADMIN_ID_CTX.set(admin_id)
