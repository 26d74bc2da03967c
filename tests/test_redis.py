"""Redis client construction tests."""

import pytest

import shortlink.redis
from shortlink.config import Settings
from shortlink.redis import create_redis


@pytest.mark.asyncio
async def test_create_redis_applies_socket_timeouts() -> None:
    settings = Settings(REDIS_URL="redis://cache.internal:6380/2", REDIS_SOCKET_TIMEOUT_SECONDS=0.25)

    client = create_redis(settings)
    try:
        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["socket_timeout"] == 0.25
        assert kwargs["socket_connect_timeout"] == 0.25
        assert kwargs["decode_responses"] is True
    finally:
        await client.aclose()


def test_module_exposes_only_the_factory() -> None:
    assert shortlink.redis.__all__ == ["create_redis"]
    assert not hasattr(shortlink.redis, "redis_client")
