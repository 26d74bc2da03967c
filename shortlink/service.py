"""Shortening and resolution services - core business logic.

Both services receive their collaborators through the constructor, so the
same code runs against PostgreSQL/Redis in production and in-memory fakes in
tests.

Flow Diagram - Shorten
======================
::
    ┌─────────────┐
    │ long_url    │
    └──────┬──────┘
           ▼
    ┌─────────────┐   invalid
    │ validate     │────────────► InvalidInputError (no I/O)
    └──────┬──────┘
           ▼
    ┌─────────────┐   optional, SHORTEN_DEDUPLICATE
    │ existing?    │────────────► return existing record
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ generate     │◄──────────┐
    │ unique code  │           │ UniquenessConflictError
    └──────┬──────┘           │ (bounded by SHORTEN_MAX_ATTEMPTS)
           ▼                  │
    ┌─────────────┐           │
    │ store.insert │───────────┘
    └──────┬──────┘
           ▼  committed
    ┌─────────────┐
    │ cache.set    │  best-effort, keyed by code
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ short URL    │
    └─────────────┘

Flow Diagram - Resolve
======================
::
    ┌─────────────┐   malformed
    │ code shape?  │────────────► None (no I/O)
    └──────┬──────┘
           ▼
    ┌──────────────────────────────────────────┐
    │ cache.get_or_compute(code key,            │
    │                      store.find_by_code) │
    └──────┬───────────────────────────────────┘
           ▼
    long URL or None

Key Behaviours
===============
- The cache is written only after the store confirms the insert.
- A cache failure never fails a request; a store failure always does.
- Not-found is a normal ``None`` result and is never cached.

Classes:
    ShorteningService:  Creates new short links.
    ResolutionService:  Resolves codes back to long URLs.
"""

import datetime
import logging
import time
import uuid
from typing import Optional

from prometheus_client import Counter, Histogram

from shortlink.cache import CacheLayer
from shortlink.codegen import CodeGenerator, CodeGeneratorConfig, is_valid_code
from shortlink.config import Settings
from shortlink.enums import RequestStatus
from shortlink.errors import (
    CodeGenerationError,
    InvalidInputError,
    StoreUnavailableError,
    UniquenessConflictError,
)
from shortlink.schemas import ShortLinkRecord, is_valid_long_url
from shortlink.store import ShortLinkStore

__all__ = ["ShorteningService", "ResolutionService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

SHORTEN_REQUESTS_TOTAL = Counter(
    "shortlink_shorten_requests_total",
    "Total shorten requests",
    ["status"],
)
SHORTEN_DURATION = Histogram(
    "shortlink_shorten_duration_seconds",
    "Time taken to create short links",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "shortlink_resolve_requests_total",
    "Total resolve requests",
    ["status"],
)
RESOLVE_DURATION = Histogram(
    "shortlink_resolve_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
INSERT_CONFLICTS_TOTAL = Counter(
    "shortlink_insert_conflicts_total",
    "Inserts rejected by the unique index on code",
)


def _status_for(exc: Exception) -> RequestStatus:
    if isinstance(exc, InvalidInputError):
        return RequestStatus.INVALID_INPUT
    if isinstance(exc, StoreUnavailableError):
        return RequestStatus.STORE_UNAVAILABLE
    return RequestStatus.ERROR


# ============================================================================
# SHORTENING
# ============================================================================


class ShorteningService:
    """Creates short links: generate, persist, then warm the cache.

    Example:
        >>> service = ShorteningService(store, cache, generator, settings)
        >>> await service.shorten("https://example.com/a/b?c=1")
        'http://localhost:8080/Ab3dE9x'
    """

    def __init__(
        self,
        store: ShortLinkStore,
        cache: CacheLayer,
        generator: CodeGenerator,
        settings: Settings,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._store = store
        self._cache = cache
        self._generator = generator
        self._settings = settings
        self._logger = logger or logging.getLogger("shortlink.service")

    async def shorten(self, long_url: str) -> str:
        """Return the short URL for ``long_url``, creating a link as needed."""
        record = await self.create(long_url)
        return record.short_url

    async def create(self, long_url: str) -> ShortLinkRecord:
        """Create (or, with de-duplication on, reuse) the link for ``long_url``.

        Raises:
            InvalidInputError: If ``long_url`` is not an absolute, well-formed URL.
            CodeGenerationError: If no unique code could be inserted.
            StoreUnavailableError: If the store cannot be reached.
        """
        start_time = time.perf_counter()
        try:
            if not is_valid_long_url(long_url):
                raise InvalidInputError(f"Invalid URL: {long_url!r}")

            if self._settings.SHORTEN_DEDUPLICATE:
                existing = await self._find_existing(long_url)
                if existing is not None:
                    SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
                    self._logger.info(f"Reusing short code {existing.code} for repeated URL")
                    return existing

            record = await self._insert_new(long_url)
            await self._warm_cache(record)

            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
            self._logger.info(
                f"Short link created: {record.code} in {time.perf_counter() - start_time:.3f}s"
            )
            return record

        except InvalidInputError as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.INVALID_INPUT).inc()
            self._logger.warning(f"Shorten rejected: {exc}")
            raise

        except Exception as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=_status_for(exc)).inc()
            self._logger.error(f"Shorten failed: {exc}")
            raise

        finally:
            SHORTEN_DURATION.observe(time.perf_counter() - start_time)

    async def _find_existing(self, long_url: str) -> Optional[ShortLinkRecord]:
        ttl = self._settings.CACHE_TTL_SECONDS

        async def from_store() -> Optional[ShortLinkRecord]:
            record = await self._store.find_by_long_url(long_url)
            if record is not None:
                # get_or_compute fills the long-URL key; the code key is ours
                await self._cache.set(self._cache.code_key(record.code), record, ttl)
            return record

        return await self._cache.get_or_compute(
            self._cache.long_url_key(long_url), from_store, ttl, ShortLinkRecord
        )

    async def _insert_new(self, long_url: str) -> ShortLinkRecord:
        attempts = self._settings.SHORTEN_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            code = await self._generator.generate_unique_code()
            record = ShortLinkRecord(
                id=uuid.uuid4(),
                long_url=long_url,
                code=code,
                short_url=f"{self._settings.base_url}/{code}",
                created_at=datetime.datetime.now(datetime.timezone.utc),
            )
            try:
                await self._store.insert(record)
            except UniquenessConflictError:
                INSERT_CONFLICTS_TOTAL.inc()
                self._logger.warning(f"Lost insert race for {code} (attempt {attempt}/{attempts})")
                continue
            return record

        raise CodeGenerationError(attempts)

    async def _warm_cache(self, record: ShortLinkRecord) -> None:
        ttl = self._settings.CACHE_TTL_SECONDS
        await self._cache.set(self._cache.code_key(record.code), record, ttl)
        if self._settings.SHORTEN_DEDUPLICATE:
            await self._cache.set(self._cache.long_url_key(record.long_url), record, ttl)


# ============================================================================
# RESOLUTION
# ============================================================================


class ResolutionService:
    """Resolves codes to long URLs through the cache, falling back to the store."""

    def __init__(
        self,
        store: ShortLinkStore,
        cache: CacheLayer,
        config: CodeGeneratorConfig,
        settings: Settings,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._store = store
        self._cache = cache
        self._config = config
        self._settings = settings
        self._logger = logger or logging.getLogger("shortlink.service")

    async def resolve(self, code: str) -> Optional[str]:
        """Return the long URL for ``code``, or None if there is none."""
        record = await self.lookup(code)
        return record.long_url if record is not None else None

    async def lookup(self, code: str) -> Optional[ShortLinkRecord]:
        """Return the full record for ``code``, or None if there is none.

        Raises:
            StoreUnavailableError: On a cache miss when the store cannot be reached.
        """
        start_time = time.perf_counter()
        try:
            if not is_valid_code(code, self._config):
                RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
                self._logger.debug(f"Malformed short code rejected: {code!r}")
                return None

            record = await self._cache.get_or_compute(
                self._cache.code_key(code),
                lambda: self._store.find_by_code(code),
                self._settings.CACHE_TTL_SECONDS,
                ShortLinkRecord,
            )
            status = RequestStatus.SUCCESS if record is not None else RequestStatus.NOT_FOUND
            RESOLVE_REQUESTS_TOTAL.labels(status=status).inc()
            return record

        except Exception as exc:
            RESOLVE_REQUESTS_TOTAL.labels(status=_status_for(exc)).inc()
            self._logger.error(f"Resolve failed for {code!r}: {exc}")
            raise

        finally:
            RESOLVE_DURATION.observe(time.perf_counter() - start_time)
