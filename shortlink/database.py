"""Database configuration and session management for the shortlink service.

This module provides SQLAlchemy async engine setup, session management,
and database lifecycle operations using PostgreSQL as the backend.

Flow Diagram - Database Operations
=================================
::
    ┌─────────────┐
    │  Application│
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ get_db()     │
    │ dependency  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Create async │
    │ session     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Yield to     │
    │ request     │
    │ handler     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (finally)    │
    └─────────────┘

How to Use
===========
**Step 1 - Initialize on startup**::
    await init_db()  # Creates the short_links table

**Step 2 - Use in FastAPI endpoints**::
    @app.get("/links")
    async def get_links(db: AsyncSession = Depends(get_db)):
        store = SQLAlchemyShortLinkStore(db)
        return await store.find_by_code("Ab3dE9x")

**Step 3 - Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- Sessions are request-scoped and closed on every exit path, including
  cancellation; closing rolls back any transaction still open.
- asyncpg ``command_timeout`` bounds every statement.
- Tables are created automatically on application startup.
- Engine is properly disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    get_db():  FastAPI dependency for database sessions.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import get_settings

__all__ = ["Base", "async_session", "engine", "get_db", "init_db", "close_db"]

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    connect_args={"command_timeout": settings.DB_COMMAND_TIMEOUT_SECONDS},
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
