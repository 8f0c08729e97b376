"""Tests for FastAPI application, middleware and exception handlers."""

import json

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request as StarletteRequest

from app.core.errors import (
    InvalidOrExpiredError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from app.main import create_app, internal_error_handler


@pytest.fixture
def app():
    """Create test application instance."""
    return create_app()


@pytest.fixture
async def bare_client(app):
    """Client for routes that do not touch the database."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    async def test_health_returns_healthy_status(self, bare_client):
        response = await bare_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestSecurityHeaders:
    """Every response carries the hardening headers."""

    async def test_headers_present(self, bare_client):
        response = await bare_client.get("/health")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Referrer-Policy"] == "no-referrer"
        assert "default-src 'none'" in response.headers["Content-Security-Policy"]

    async def test_api_responses_are_not_cached(self, app, bare_client):
        @app.get("/api/v1/test/ping")
        async def ping():
            return {"ok": True}

        response = await bare_client.get("/api/v1/test/ping")

        assert response.headers["Cache-Control"] == "no-store, max-age=0"

    async def test_no_hsts_outside_production(self, bare_client):
        response = await bare_client.get("/health")
        assert "Strict-Transport-Security" not in response.headers


class TestExceptionHandlers:
    """Typed errors become the error envelope with their status code."""

    async def test_api_error_envelope(self, app, bare_client):
        @app.get("/test/not-found")
        async def raise_not_found():
            raise NotFoundError("Verification token")

        response = await bare_client.get("/test/not-found")

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "NOT_FOUND",
                "message": "Verification token not found",
                "details": None,
            }
        }

    async def test_validation_error_details(self, app, bare_client):
        @app.get("/test/validation")
        async def raise_validation():
            raise ValidationError("Bad input", details=[{"field": "code"}])

        response = await bare_client.get("/test/validation")

        assert response.status_code == 400
        assert response.json()["error"]["details"] == [{"field": "code"}]

    async def test_invalid_or_expired_message_is_generic(self, app, bare_client):
        @app.get("/test/invalid")
        async def raise_invalid():
            raise InvalidOrExpiredError()

        response = await bare_client.get("/test/invalid")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == (
            "Invalid or expired verification code"
        )

    async def test_rate_limited_sets_retry_after(self, app, bare_client):
        @app.get("/test/cooldown")
        async def raise_cooldown():
            raise RateLimitedError(17)

        response = await bare_client.get("/test/cooldown")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "17"
        assert response.json()["error"]["details"] == [{"retry_after": 17}]

    async def test_request_validation_returns_400(self, client):
        response = await client.post("/api/v1/auth/forgot-password", json={})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["loc"] == ["body", "email"]

    def test_unhandled_exception_is_generic_500(self):
        request = StarletteRequest(
            {"type": "http", "method": "GET", "path": "/x", "headers": []}
        )

        response = internal_error_handler(request, RuntimeError("db password=hunter2"))
        body = json.loads(response.body.decode())

        assert response.status_code == 500
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "hunter2" not in response.body.decode()
