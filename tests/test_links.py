"""Link lookup endpoint behavior tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_link_valid_code(client: AsyncClient) -> None:
    create_resp = await client.post("/api/shorten", json={"url": "https://www.google.com"})
    created = create_resp.json()

    response = await client.get(f"/api/links/{created['code']}")
    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_link_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/api/links/ZZZZZZZ")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_link_malformed_code(client: AsyncClient) -> None:
    response = await client.get("/api/links/nope")
    assert response.status_code == 404
