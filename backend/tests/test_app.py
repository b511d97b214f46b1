"""
Lime Core Backend — Application Wiring Tests
==============================================

What:  Health check, request IDs, unknown routes and the rate limiter.
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from lime_core.config import settings
from lime_core.main import describe_validation_errors, register_exception_handlers
from lime_core.middleware.rate_limit import RateLimitMiddleware


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_is_not_enveloped(self, test_client):
        response = await test_client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert "message" not in body


class TestRequestHandling:

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_unknown_route_is_enveloped(self, test_client):
        response = await test_client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "data": None, "message": "Not Found"}

    def test_validation_messages_drop_location_prefix(self):
        message = describe_validation_errors(
            [{"loc": ("body", "name"), "msg": "Field required"}]
        )
        assert message == "Invalid request: name: Field required"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_requests_over_budget_get_429_envelope(self):
        app = FastAPI()
        register_exception_handlers(app)
        app.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60)

        @app.get("/ping")
        async def ping():
            return {"pong": True}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            limited = await client.get("/ping")

        assert limited.status_code == 429
        assert limited.json()["status"] == "error"
        assert limited.json()["data"] is None
        assert int(limited.headers["Retry-After"]) > 0

    @pytest.mark.asyncio
    async def test_rejected_request_keeps_its_request_id(
        self, test_client, monkeypatch, caplog
    ):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)
        headers = {"X-Request-ID": "req-limited"}

        with caplog.at_level(logging.WARNING, logger="lime_core"):
            await test_client.get("/does-not-exist", headers=headers)
            limited = await test_client.get("/does-not-exist", headers=headers)

        assert limited.status_code == 429
        assert limited.headers["X-Request-ID"] == "req-limited"
        rate_limit_logs = [
            record.getMessage()
            for record in caplog.records
            if "RATE_LIMIT_EXCEEDED" in record.getMessage()
        ]
        assert rate_limit_logs
        assert all(message.startswith("[req-limited]") for message in rate_limit_logs)
