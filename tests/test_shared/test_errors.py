"""Tests for shared error classes and exception handlers."""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.shared.errors import (
    AppError,
    ParsingError,
    PayloadTooLargeError,
    ValidationError,
    register_exception_handlers,
)


class TestAppError:
    """Tests for the base AppError exception."""

    def test_default_status_code(self):
        err = AppError(detail="something broke")
        assert err.status_code == 500
        assert err.detail == "something broke"

    def test_custom_status_code(self):
        err = AppError(detail="bad request", status_code=400)
        assert err.status_code == 400

    def test_str_is_detail(self):
        err = AppError(detail="human readable")
        assert str(err) == "human readable"


class TestValidationError:
    """Tests for ValidationError (422)."""

    def test_default_detail(self):
        err = ValidationError()
        assert err.status_code == 422
        assert err.detail == "Validation error"

    def test_inherits_from_app_error(self):
        assert issubclass(ValidationError, AppError)


class TestParsingError:
    """Tests for ParsingError (400)."""

    def test_default_detail(self):
        err = ParsingError()
        assert err.status_code == 400
        assert err.detail == "Parsing error"

    def test_custom_detail(self):
        err = ParsingError(detail="Response is not JSON")
        assert err.detail == "Response is not JSON"


class TestPayloadTooLargeError:
    """Tests for PayloadTooLargeError (413)."""

    def test_default_detail(self):
        err = PayloadTooLargeError()
        assert err.status_code == 413
        assert err.detail == "Payload too large"

    def test_inherits_from_app_error(self):
        assert issubclass(PayloadTooLargeError, AppError)


class TestRegisterExceptionHandlers:
    """Tests for register_exception_handlers on a FastAPI app."""

    def test_app_error_returns_json(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/test-500")
        async def _raise_app():
            raise AppError(detail="server error")

        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/test-500")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "server error"}

    def test_payload_too_large_returns_413(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/test-413")
        async def _raise_large():
            raise PayloadTooLargeError(detail="too big")

        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/test-413")
        assert resp.status_code == 413
        assert resp.json() == {"detail": "too big"}

    def test_validation_error_returns_422(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/test-422")
        async def _raise_val():
            raise ValidationError(detail="bad field")

        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/test-422")
        assert resp.status_code == 422
        assert resp.json() == {"detail": "bad field"}
