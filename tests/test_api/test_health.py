"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient


class TestHealthEndpoints:
    """Tests for health check routes."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    @pytest.mark.asyncio
    async def test_health_live_endpoint(self, client: AsyncClient):
        response = await client.get("/health/live")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"alive": True}

    @pytest.mark.asyncio
    async def test_health_ready_endpoint(self, client: AsyncClient):
        response = await client.get("/health/ready")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"database": True}

    @pytest.mark.asyncio
    async def test_health_ready_degraded(self, client: AsyncClient):
        with patch(
            "qrbatch.api.routes.health.verify_db_connection",
            new=AsyncMock(return_value=False),
        ):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers["X-Request-Id"].startswith("req_")
