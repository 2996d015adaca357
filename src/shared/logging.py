"""Structured JSON logging with trace_id support."""
from __future__ import annotations

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Context variable for trace_id
trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "trace_id", default=""
)

# Loggers of the extraction services live under this package prefix.
SERVICE_LOGGER_PREFIX = "src.prd_extraction"

TRACE_ID_HEADER = "X-Trace-ID"
MAX_TRACE_ID_LENGTH = 64


class JSONFormatter(logging.Formatter):
    """Custom JSON log formatter."""

    def __init__(self, service_name: str = "unknown") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": self.service_name,
            "logger": record.name,
            "trace_id": trace_id_var.get(""),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


def setup_logging(service_name: str, level: str = "INFO") -> logging.Logger:
    """Configure structured JSON logging for a service.

    The service logger and the logger tree of the extraction services
    share one JSON handler, so module-level ``logging.getLogger(__name__)``
    loggers emit the same structured records.

    Args:
        service_name: Name of the service for log entries.
        level: Log level string (e.g. "INFO", "DEBUG").

    Returns:
        Configured logger instance.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter(service_name=service_name))

    logger = logging.getLogger(service_name)
    for configured in (logger, logging.getLogger(SERVICE_LOGGER_PREFIX)):
        configured.setLevel(numeric_level)
        # Remove existing handlers
        configured.handlers.clear()
        configured.addHandler(handler)
        configured.propagate = False

    return logger


class TraceIDMiddleware(BaseHTTPMiddleware):
    """Middleware that binds a trace_id to each request.

    A caller-supplied ``X-Trace-ID`` header of at most 64 characters is
    reused; otherwise a new id is generated.  The id is returned in the
    ``X-Trace-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        incoming = request.headers.get(TRACE_ID_HEADER, "").strip()
        request_trace_id = (
            incoming if 0 < len(incoming) <= MAX_TRACE_ID_LENGTH else str(uuid.uuid4())
        )
        token = trace_id_var.set(request_trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_var.reset(token)
        response.headers[TRACE_ID_HEADER] = request_trace_id
        return response
