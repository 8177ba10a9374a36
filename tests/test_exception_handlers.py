"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, the error envelope, and no information leakage.
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from victry.core.errors import (
    AppError,
    ErrorCategory,
    ErrorCode,
    create_api_error,
    create_not_found_error,
)
from victry.core.exception_handlers import general_exception_handler, setup_exception_handlers
from victry.core.middleware import request_id_middleware


class Payload(BaseModel):
    email: str = Field(..., min_length=3)
    age: int


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers and request ids."""
    app = FastAPI()
    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise AppError(create_not_found_error("resume", "r1"))

    @app.get("/remote-status")
    async def remote_status():
        raise AppError(create_api_error("Upstream failed", ErrorCategory.SERVICE), http_status=502)

    @app.get("/validation-error")
    async def validation_error():
        raise AppError(
            create_api_error(
                "Invalid email",
                ErrorCategory.VALIDATION,
                code=ErrorCode.VALIDATION_INVALID_FORMAT,
                details={"raw": "secret-input"},
            )
        )

    @app.post("/body")
    async def body(payload: Payload):
        return {"ok": True}

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=409, detail="Already exists")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    def test_not_found(self, client: TestClient) -> None:
        response = client.get("/not-found", headers={"X-Request-ID": "req-123"})

        assert response.status_code == 404
        assert response.json() == {
            "error": "resume with ID r1 not found",
            "code": "not_found_resume",
            "requestId": "req-123",
        }

    def test_remote_status_is_preserved(self, client: TestClient) -> None:
        response = client.get("/remote-status")

        assert response.status_code == 502
        assert response.json()["error"] == "Upstream failed"

    def test_details_are_not_leaked(self, client: TestClient) -> None:
        response = client.get("/validation-error")

        assert response.status_code == 400
        assert response.json()["code"] == "validation_invalid_format"
        assert "secret-input" not in response.text


class TestValidationHandler:
    def test_field_errors_are_listed(self, client: TestClient) -> None:
        response = client.post("/body", json={"email": "a"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert data["code"] == "validation_invalid_data"
        fields = {item["field"] for item in data["validationErrors"]}
        assert fields == {"email", "age"}


class TestHttpExceptionHandler:
    def test_unknown_route_uses_envelope(self, client: TestClient) -> None:
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json()["code"] == "not_found_resource"

    def test_method_not_allowed(self, client: TestClient) -> None:
        response = client.delete("/not-found")

        assert response.status_code == 405
        assert response.json()["code"] == "validation_invalid_data"
        assert "GET" in response.headers["allow"]

    def test_http_exception_detail(self, client: TestClient) -> None:
        response = client.get("/teapot")

        assert response.status_code == 409
        assert response.json() == {
            "error": "Already exists",
            "code": "conflict_already_exists",
            "requestId": response.headers["X-Request-ID"],
        }


class TestGeneralExceptionHandler:
    def test_unexpected_error_is_generic(self, client: TestClient) -> None:
        response = client.get("/boom")

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "server_internal_error"
        assert data["error"] == "An unexpected error occurred. Please try again later."
        assert "hunter2" not in response.text
        assert "Traceback" not in response.text

    def test_handler_logic(self) -> None:
        request = MagicMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert "ValueError" not in json.dumps(data)


class TestErrorHandlerIntegration:
    def test_setup_registers_handlers(self, app_with_handlers: FastAPI) -> None:
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self) -> None:
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
