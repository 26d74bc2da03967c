"""Shared pytest fixtures: settings, in-memory collaborators, services and an API client."""

import datetime
import uuid
from collections.abc import Callable
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortlink.cache import CacheLayer
from shortlink.codegen import CodeGenerator, CodeGeneratorConfig
from shortlink.config import Settings
from shortlink.database import get_db
from shortlink.dependencies import get_cache, get_store
from shortlink.main import app
from shortlink.schemas import ShortLinkRecord
from shortlink.service import ResolutionService, ShorteningService
from tests.fakes import BASE_URL, FakeRedis, InMemoryShortLinkStore


@pytest.fixture
def settings() -> Settings:
    return Settings(
        BASE_URL=BASE_URL,
        CACHE_TTL_SECONDS=1800,
        SHORT_CODE_LENGTH=7,
        CODE_GENERATION_MAX_ATTEMPTS=10,
        SHORTEN_MAX_ATTEMPTS=5,
        SHORTEN_DEDUPLICATE=False,
        DB_RETRY_DELAY_SECONDS=0,
    )


@pytest.fixture
def code_config(settings: Settings) -> CodeGeneratorConfig:
    return CodeGeneratorConfig.from_settings(settings)


@pytest.fixture
def sample_record_factory() -> Callable[..., ShortLinkRecord]:
    def make(code: str = "Ab3dE9x", long_url: str = "https://example.com/a/b?c=1") -> ShortLinkRecord:
        return ShortLinkRecord(
            id=uuid.uuid4(),
            long_url=long_url,
            code=code,
            short_url=f"{BASE_URL}/{code}",
            created_at=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
        )

    return make


@pytest.fixture
def store() -> InMemoryShortLinkStore:
    return InMemoryShortLinkStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> CacheLayer:
    return CacheLayer(fake_redis, key_prefix="shortlink")


@pytest.fixture
def generator(store: InMemoryShortLinkStore, code_config: CodeGeneratorConfig) -> CodeGenerator:
    return CodeGenerator(store, code_config)


@pytest.fixture
def shortener(
    store: InMemoryShortLinkStore, cache: CacheLayer, generator: CodeGenerator, settings: Settings
) -> ShorteningService:
    return ShorteningService(store, cache, generator, settings)


@pytest.fixture
def resolver(
    store: InMemoryShortLinkStore, cache: CacheLayer, code_config: CodeGeneratorConfig, settings: Settings
) -> ResolutionService:
    return ResolutionService(store, cache, code_config, settings)


@pytest_asyncio.fixture(scope="function")
async def client(
    store: InMemoryShortLinkStore, cache: CacheLayer
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[None, None]:
        yield None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_cache] = lambda: cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
