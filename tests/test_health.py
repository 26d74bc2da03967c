"""Health endpoint tests."""

import pytest
from httpx import AsyncClient

from shortlink.enums import HealthStatus
from tests.fakes import FakeRedis, InMemoryShortLinkStore


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert data["cache"] == HealthStatus.HEALTHY.value


@pytest.mark.asyncio
async def test_health_check_cache_down(client: AsyncClient, fake_redis: FakeRedis) -> None:
    fake_redis.fail_reads = True
    data = (await client.get("/health")).json()
    assert data["status"] == HealthStatus.UNHEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert data["cache"] == HealthStatus.UNHEALTHY.value


@pytest.mark.asyncio
async def test_health_check_store_down(client: AsyncClient, store: InMemoryShortLinkStore) -> None:
    store.unavailable = True
    data = (await client.get("/health")).json()
    assert data["status"] == HealthStatus.UNHEALTHY.value
    assert data["database"] == HealthStatus.UNHEALTHY.value
