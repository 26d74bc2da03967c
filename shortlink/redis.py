"""Redis client construction for the shortlink cache.

The ``ServiceManager`` builds one client at startup and closes it on shutdown.

Flow Diagram - Client Setup
===========================
::
    ┌──────────────────┐
    │ ServiceManager   │
    │ .initialize()    │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ create_redis()   │
    │ REDIS_URL +      │
    │ socket timeouts  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ CacheLayer       │
    └──────────────────┘

Key Behaviours
===============
- Socket timeouts keep a slow cache from stalling the request; the cache
  layer treats a timeout as a miss.
- UTF-8 encoding with decode_responses for string operations.
"""

import redis.asyncio as redis

from shortlink.config import Settings

__all__ = ["create_redis"]


def create_redis(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
    )
