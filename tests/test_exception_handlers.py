"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.base import RateLimitDecision
from app.core.errors import (
    AppError,
    KnowledgeBaseAppError,
    LLMAppError,
    RateLimitExceededError,
    StorageUnavailableError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers
from app.services.rate_limit_service import rate_limit_error


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _route_raising(app: FastAPI, path: str, exc: Exception) -> None:
    @app.get(path)
    async def _endpoint():
        raise exc


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("exc", "status_code"),
        [
            (ValidationAppError(code="invalid_message", message="Invalid message"), 400),
            (LLMAppError(code="llm_unavailable", message="AI service unavailable"), 502),
            (KnowledgeBaseAppError(code="knowledge_base_missing", message="Missing"), 500),
            (StorageUnavailableError(code="storage_down", message="Storage down"), 500),
            (AppError(code="generic", message="Generic failure"), 400),
        ],
    )
    def test_status_code_by_error_type(self, client, app_with_handlers, exc, status_code):
        _route_raising(app_with_handlers, "/boom", exc)

        response = client.get("/boom")

        assert response.status_code == status_code
        data = response.json()
        assert data["error"] == exc.message
        assert data["code"] == exc.code
        assert "request_id" in data

    def test_details_are_included_when_present(self, client, app_with_handlers):
        _route_raising(
            app_with_handlers,
            "/details",
            ValidationAppError(
                code="invalid_message",
                message="Invalid message",
                details={"errors": ["Message cannot be empty"], "max_length": 1000, "actual_length": 0},
            ),
        )

        data = client.get("/details").json()

        assert data["details"]["errors"] == ["Message cannot be empty"]
        assert data["details"]["max_length"] == 1000

    def test_details_omitted_when_absent(self, client, app_with_handlers):
        _route_raising(app_with_handlers, "/plain", ValidationAppError(code="x", message="y"))

        assert "details" not in client.get("/plain").json()


class TestRateLimitHandler:
    def test_rejected_decision_becomes_429(self, client, app_with_handlers):
        decision = RateLimitDecision(allowed=False, limit=50, remaining=0, reset=1_700_000_900, retry_after=900)
        _route_raising(app_with_handlers, "/limited", rate_limit_error(decision))

        response = client.get("/limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        assert response.headers["X-RateLimit-Limit"] == "50"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == "1700000900"
        data = response.json()
        assert data["retry_after"] == 900
        assert isinstance(data["error"], str)

    def test_error_without_decision_still_sets_retry_after(self, client, app_with_handlers):
        _route_raising(
            app_with_handlers,
            "/bare",
            RateLimitExceededError(code="rate_limit_exceeded", message="Slow down", retry_after=30),
        )

        response = client.get("/bare")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"
        data = response.json()
        assert data["error"] == "Slow down"
        assert data["retry_after"] == 30
        assert data["code"] == "rate_limit_exceeded"
        assert "X-RateLimit-Limit" not in response.headers


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(self, client, app_with_handlers):
        _route_raising(app_with_handlers, "/crash", RuntimeError("database connection failed"))

        response = client.get("/crash")

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "internal_server_error"
        assert "database connection" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        assert response.status_code == 500
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text
        assert "Test error with details" not in response_text
        assert "request_id" in json.loads(response_text)


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert RateLimitExceededError in app_with_handlers.exception_handlers
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
