"""Custom exception classes and FastAPI exception handlers.

The extraction services themselves never raise; these errors belong to
the HTTP surface, which rejects requests it cannot hand to them.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str, status_code: int = 500) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class ValidationError(AppError):
    """Request names nothing to extract from (422)."""

    def __init__(self, detail: str = "Validation error") -> None:
        super().__init__(detail=detail, status_code=422)


class ParsingError(AppError):
    """Request body could not be interpreted (400)."""

    def __init__(self, detail: str = "Parsing error") -> None:
        super().__init__(detail=detail, status_code=400)


class PayloadTooLargeError(AppError):
    """Submitted document exceeds the configured size limit (413)."""

    def __init__(self, detail: str = "Payload too large") -> None:
        super().__init__(detail=detail, status_code=413)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate ``AppError`` subclasses into ``{"detail": ...}`` responses."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            "%s %s rejected: status=%d detail=%s",
            request.method, request.url.path, exc.status_code, exc.detail,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )
