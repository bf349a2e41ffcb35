"""Health endpoint tests."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.enums import HealthStatus
from app.errors import CacheError


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert data["cache"] == HealthStatus.HEALTHY.value


@pytest.mark.asyncio
async def test_health_check_cache_down(client: AsyncClient, service_manager) -> None:
    with patch.object(service_manager.cache, "ping", new=AsyncMock(side_effect=CacheError("redis down"))):
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.UNHEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert data["cache"] == HealthStatus.UNHEALTHY.value


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient) -> None:
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "url_shortener_redirect_requests_total" in response.text
