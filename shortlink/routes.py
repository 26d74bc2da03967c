"""FastAPI route definitions for the shortlink REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/shorten
        ├─ ShortenRequest (request body)
        └─ ShortLinkResponse (201) or 400/422/500/503

    GET  /api/links/:code
        └─ ShortLinkResponse (200) or 404/503

    GET  /:code
        └─ 307 Redirect or 404/503

Key Behaviours
===============
- Routes are thin: validation by Pydantic, work by the services.
- Store failures map to 503, exhausted code generation to 500.
- Not-found is a plain 404; malformed codes never reach the cache or store.
- 307 redirects preserve the HTTP method.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from shortlink.cache import CacheLayer
from shortlink.dependencies import (
    RequestContext,
    get_cache,
    get_request_context,
    get_resolution_service,
    get_shortening_service,
    get_store,
)
from shortlink.enums import HealthStatus
from shortlink.errors import CacheUnavailableError, CodeGenerationError, InvalidInputError, StoreUnavailableError
from shortlink.schemas import HealthResponse, ShortenRequest, ShortLinkResponse
from shortlink.service import ResolutionService, ShorteningService
from shortlink.store import ShortLinkStore

__all__ = ["router"]

router = APIRouter()

STORE_UNAVAILABLE_DETAIL = "Storage temporarily unavailable"


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    ctx: RequestContext = Depends(get_request_context),
    store: ShortLinkStore = Depends(get_store),
    cache: CacheLayer = Depends(get_cache),
) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await store.ping()
    except StoreUnavailableError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await cache.ping()
    except CacheUnavailableError as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/shorten", response_model=ShortLinkResponse, status_code=201, tags=["links"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> ShortLinkResponse:
    ctx.add_tag("shorten")
    try:
        record = await service.create(payload.url)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE_DETAIL) from exc
    except CodeGenerationError as exc:
        raise HTTPException(status_code=500, detail="Could not allocate a short code") from exc

    ctx.logger.info(
        f"Shortened in {ctx.get_duration():.1f}ms: {record.code}",
        extra={"operation": "shorten", "code": record.code},
    )
    return ShortLinkResponse.model_validate(record)


@router.get("/api/links/{code}", response_model=ShortLinkResponse, tags=["links"])
async def get_link(
    code: str,
    service: ResolutionService = Depends(get_resolution_service),
) -> ShortLinkResponse:
    try:
        record = await service.lookup(code)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE_DETAIL) from exc
    if record is None:
        raise HTTPException(status_code=404, detail="Short URL not found")
    return ShortLinkResponse.model_validate(record)


@router.get("/{code}", tags=["redirect"])
async def redirect_to_url(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")
    try:
        long_url = await service.resolve(code)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE_DETAIL) from exc

    if long_url is None:
        ctx.logger.info(f"Redirect target not found: {code!r}", extra={"operation": "redirect"})
        raise HTTPException(status_code=404, detail="Short URL not found")

    return RedirectResponse(url=long_url, status_code=307)
