"""Cache-aside layer over Redis.

The cache holds transient copies of records the store has already confirmed.
It never has write authority of its own: values only enter it through
``get_or_compute`` (after a store read) or ``set`` (after a committed insert).

Flow Diagram - get_or_compute()
===============================
::
    ┌──────────────┐
    │ GET key      │──── Redis error ───┐
    └──────┬───────┘                    │ (logged, treated as miss)
    HIT?   │                            │
    ┌──────┴──────┐                     │
    │ YES         │ NO ◄────────────────┘
    ▼             ▼
┌─────────┐  ┌─────────────┐
│ decode, │  │ compute()   │  (errors propagate)
│ return  │  └──────┬──────┘
└─────────┘   None? │
             ┌──────┴──────┐
             │ YES         │ NO
             ▼             ▼
        ┌─────────┐  ┌─────────────┐
        │ return  │  │ SET key ttl │  (errors logged, swallowed)
        │ None    │  │ return value│
        └─────────┘  └─────────────┘

Key Behaviours
===============
- Negative results are never cached; an unknown code hits the store every time.
- No single-flight: concurrent misses for the same key may each compute and write.
- Every Redis failure is absorbed; correctness never depends on cache contents.
- Resolution keys are derived from the code only. The long-URL namespace used for
  shorten de-duplication is separate and keyed by a SHA-256 digest of the URL.

Classes:
    CacheLayer:  Redis-backed cache-aside primitive.
"""

import hashlib
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import redis.asyncio as redis
from prometheus_client import Counter
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from shortlink.errors import CacheUnavailableError

__all__ = ["CacheLayer"]

M = TypeVar("M", bound=BaseModel)

_CACHE_ERRORS = (RedisError, TimeoutError, OSError)

CACHE_HITS_TOTAL = Counter(
    "shortlink_cache_hits_total",
    "Total cache hits",
)
CACHE_MISSES_TOTAL = Counter(
    "shortlink_cache_misses_total",
    "Total cache misses",
)
CACHE_ERRORS_TOTAL = Counter(
    "shortlink_cache_errors_total",
    "Cache operations that failed and were absorbed",
    ["operation"],
)


class CacheLayer:
    """Best-effort Redis cache with a cache-aside primitive."""

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = "shortlink",
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._client = client
        self._prefix = key_prefix
        self._logger = logger or logging.getLogger("shortlink.cache")

    def code_key(self, code: str) -> str:
        return f"{self._prefix}:code:{code}"

    def long_url_key(self, long_url: str) -> str:
        digest = hashlib.sha256(long_url.encode("utf-8")).hexdigest()
        return f"{self._prefix}:long_url:{digest}"

    async def get(self, key: str, model: type[M]) -> Optional[M]:
        """Return the cached value for ``key``, or None on miss or failure."""
        try:
            raw = await self._client.get(key)
        except _CACHE_ERRORS as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed for {key}, falling back: {exc}")
            return None

        if raw is None:
            CACHE_MISSES_TOTAL.inc()
            return None

        try:
            value = model.model_validate_json(raw)
        except ValidationError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="decode").inc()
            self._logger.warning(f"Discarding undecodable cache entry {key}: {exc}")
            return None

        CACHE_HITS_TOTAL.inc()
        return value

    async def set(self, key: str, value: BaseModel, ttl: int) -> bool:
        """Store ``value`` under ``key`` for ``ttl`` seconds. Returns False on failure."""
        try:
            await self._client.set(key, value.model_dump_json(), ex=ttl)
        except _CACHE_ERRORS as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            self._logger.warning(f"Cache write failed for {key}: {exc}")
            return False
        return True

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Optional[M]]],
        ttl: int,
        model: type[M],
    ) -> Optional[M]:
        """Return the cached value for ``key`` or compute, cache and return it.

        ``compute`` is only invoked on a miss. A ``None`` result is returned
        as-is and is not written to the cache. Exceptions raised by ``compute``
        propagate to the caller.
        """
        cached = await self.get(key, model)
        if cached is not None:
            return cached

        value = await compute()
        if value is None:
            return None

        await self.set(key, value, ttl)
        return value

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except _CACHE_ERRORS as exc:
            raise CacheUnavailableError(str(exc)) from exc
