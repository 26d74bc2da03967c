"""FastAPI application entry point for the shortlink service.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ init_db()   │
    │ manager     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ cleanup()   │
    │ close_db()  │
    └─────────────┘

How to Use
===========
**Step 1 - Run with uvicorn**::
    uvicorn shortlink.main:app --host 0.0.0.0 --port 8080

**Step 2 - Make API calls**::
    curl -X POST http://localhost:8080/api/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com/a/b?c=1"}'

    curl -i http://localhost:8080/Ab3dE9x

Key Behaviours
===============
- The short_links table is created automatically on startup.
- Prometheus metrics are exposed at /metrics.
- Database and Redis connections are released on shutdown.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shortlink.config import get_settings
from shortlink.database import close_db, init_db
from shortlink.dependencies import _service_manager
from shortlink.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    await init_db()
    _service_manager.logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Maps long URLs to short codes and back",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
