"""
Tests for the middleware stack.
"""

import json

import pytest
import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.middleware import ErrorHandlingMiddleware, IdentityMiddleware
from app.core.errors import InvalidUploadError, RecordNotFoundError
from app.utils.logger import bind_user_context


@pytest.fixture
def middleware_client():
    """Minimal app behind the identity and error middleware."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(IdentityMiddleware)

    @app.get("/context")
    async def context():
        return structlog.contextvars.get_contextvars()

    @app.get("/corrupt")
    async def corrupt():
        json.loads("{broken")

    @app.get("/invalid")
    async def invalid():
        raise InvalidUploadError("Please upload a valid image file.")

    @app.get("/missing")
    async def missing():
        raise RecordNotFoundError("Record not found: 7")

    return TestClient(app)


class TestLogContext:
    """Test per-request log context binding."""

    def test_identity_bound_to_log_context(self, middleware_client):
        response = middleware_client.get("/context", headers={"X-User-Email": "jane@example.com"})

        assert response.json()["user"] == "jane@example.com"

    def test_anonymous_request(self, middleware_client):
        assert middleware_client.get("/context").json()["user"] == "anonymous"

    def test_bind_replaces_previous_context(self):
        structlog.contextvars.bind_contextvars(record_id=3)

        bind_user_context("ann@example.com")

        assert structlog.contextvars.get_contextvars() == {"user": "ann@example.com"}
        structlog.contextvars.clear_contextvars()


class TestErrorHandling:
    """Test mapping of escaped exceptions to responses."""

    def test_internal_value_error_is_500(self, middleware_client):
        response = middleware_client.get("/corrupt")

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "INTERNAL_ERROR"
        assert "Expecting" not in data["message"]

    def test_domain_error_is_400(self, middleware_client):
        response = middleware_client.get("/invalid")

        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Please upload a valid image file."
        assert data["error_code"] == "BAD_REQUEST"
        assert "timestamp" in data

    def test_not_found_is_404(self, middleware_client):
        response = middleware_client.get("/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"
