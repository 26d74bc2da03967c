"""Dependency injection with a singleton service manager.

Shared resources (settings, logger, Redis client, cache layer, code generator
configuration) are created once; the database session and the services built
on it are request-scoped. Tests substitute fakes by overriding ``get_store``,
``get_cache`` or ``get_db`` through ``app.dependency_overrides``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.cache import CacheLayer
from shortlink.codegen import CodeGenerator, CodeGeneratorConfig
from shortlink.config import Settings, get_settings
from shortlink.database import get_db
from shortlink.redis import create_redis
from shortlink.service import ResolutionService, ShorteningService
from shortlink.store import ShortLinkStore, SQLAlchemyShortLinkStore

# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources."""

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self.redis_client = self._setup_redis()
            self.cache = CacheLayer(
                self.redis_client,
                key_prefix=self.settings.CACHE_KEY_PREFIX,
                logger=self.logger.getChild("cache"),
            )
            self.code_config = CodeGeneratorConfig.from_settings(self.settings)
            self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortlink")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    def _setup_redis(self) -> redis.Redis:
        """Setup Redis client once."""
        return create_redis(self.settings)

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if hasattr(self, "redis_client"):
            await self.redis_client.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request context with tracking information and shared resources.

    Attributes:
        database: Async database session (the only per-request resource)
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    tags: list[str] = field(default_factory=list)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger carrying this request's identifiers."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        database=db,
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_store(ctx: RequestContext = Depends(get_request_context)) -> ShortLinkStore:
    return SQLAlchemyShortLinkStore(ctx.database, ctx.settings, ctx.logger)


def get_cache(manager: ServiceManager = Depends(get_service_manager)) -> CacheLayer:
    return manager.cache


def get_shortening_service(
    ctx: RequestContext = Depends(get_request_context),
    store: ShortLinkStore = Depends(get_store),
    cache: CacheLayer = Depends(get_cache),
) -> ShorteningService:
    generator = CodeGenerator(store, ctx.service_manager.code_config, ctx.logger)
    return ShorteningService(store, cache, generator, ctx.settings, ctx.logger)


def get_resolution_service(
    ctx: RequestContext = Depends(get_request_context),
    store: ShortLinkStore = Depends(get_store),
    cache: CacheLayer = Depends(get_cache),
) -> ResolutionService:
    return ResolutionService(store, cache, ctx.service_manager.code_config, ctx.settings, ctx.logger)
