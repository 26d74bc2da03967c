"""Durable store adapter for short links.

The store is the sole source of truth for code → URL mappings. Its unique index
on ``code`` is the only mechanism that guarantees uniqueness under concurrent
writers; callers treat a conflict on insert as a signal to retry with a new code.

Flow Diagram - Insert
=====================
::
    ┌─────────────┐
    │ insert(rec) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ add + commit │
    └──────┬──────┘
    OK?    │
    ┌──────┴───────────────┬──────────────────┐
    │ YES                  │ IntegrityError   │ connection / timeout
    ▼                      ▼                  ▼
┌─────────┐        ┌──────────────┐   ┌──────────────────┐
│ return  │        │ rollback,    │   │ rollback,        │
│         │        │ Uniqueness-  │   │ StoreUnavailable-│
│         │        │ ConflictError│   │ Error            │
└─────────┘        └──────────────┘   └──────────────────┘

Reads (``exists``, ``find_by_code``, ``find_by_long_url``) are idempotent and are
retried ``DB_MAX_RETRY_COUNT`` times before surfacing ``StoreUnavailableError``.

Classes:
    ShortLinkStore:  Abstract contract implemented by every backend.
    SQLAlchemyShortLinkStore:  PostgreSQL implementation over an AsyncSession.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from sqlalchemy import exists, select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.config import Settings, get_settings
from shortlink.errors import StoreUnavailableError, UniquenessConflictError
from shortlink.models import ShortLink
from shortlink.schemas import ShortLinkRecord

__all__ = ["ShortLinkStore", "SQLAlchemyShortLinkStore"]

T = TypeVar("T")

_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError, OSError)


def _is_unavailable(exc: BaseException) -> bool:
    if isinstance(exc, _UNAVAILABLE_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class ShortLinkStore(ABC):
    """Contract for persisting and querying short links."""

    @abstractmethod  # pragma: no cover
    async def exists(self, code: str) -> bool:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def insert(self, record: ShortLinkRecord) -> None:
        """Persist ``record``.

        Raises:
            UniquenessConflictError: If another record already holds the code.
            StoreUnavailableError: If the store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def find_by_code(self, code: str) -> Optional[ShortLinkRecord]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def find_by_long_url(self, long_url: str) -> Optional[ShortLinkRecord]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    async def ping(self) -> None:
        raise NotImplementedError


class SQLAlchemyShortLinkStore(ShortLinkStore):
    """Short link store backed by a request-scoped SQLAlchemy ``AsyncSession``.

    The session is owned by the caller (the ``get_db`` dependency), which closes
    it on every exit path. This class never commits on behalf of anyone else.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._session = session
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger("shortlink.store")

    async def exists(self, code: str) -> bool:
        async def query() -> bool:
            result = await self._session.execute(select(exists().where(ShortLink.code == code)))
            return bool(result.scalar())

        return await self._read(query, f"exists({code})")

    async def insert(self, record: ShortLinkRecord) -> None:
        row = ShortLink.from_record(record)
        try:
            self._session.add(row)
            await self._session.commit()
        except IntegrityError as exc:
            await self._rollback()
            self._logger.warning(f"Unique index rejected short code: {record.code}")
            raise UniquenessConflictError(record.code) from exc
        except Exception as exc:
            if not _is_unavailable(exc):
                raise
            await self._rollback()
            self._logger.error(f"Store insert failed for {record.code}: {exc}")
            raise StoreUnavailableError(f"Could not persist short code '{record.code}'") from exc

    async def find_by_code(self, code: str) -> Optional[ShortLinkRecord]:
        async def query() -> Optional[ShortLinkRecord]:
            result = await self._session.execute(select(ShortLink).where(ShortLink.code == code))
            return self._to_record(result.scalar_one_or_none())

        return await self._read(query, f"find_by_code({code})")

    async def find_by_long_url(self, long_url: str) -> Optional[ShortLinkRecord]:
        async def query() -> Optional[ShortLinkRecord]:
            result = await self._session.execute(
                select(ShortLink)
                .where(ShortLink.long_url == long_url)
                .order_by(ShortLink.created_at)
                .limit(1)
            )
            return self._to_record(result.scalar_one_or_none())

        return await self._read(query, "find_by_long_url")

    async def ping(self) -> None:
        await self._read(lambda: self._session.execute(text("SELECT 1")), "ping")

    async def _read(self, query: Callable[[], Awaitable[T]], operation: str) -> T:
        attempts = self._settings.DB_MAX_RETRY_COUNT + 1
        for attempt in range(1, attempts + 1):
            try:
                return await query()
            except Exception as exc:
                if not _is_unavailable(exc):
                    raise
                await self._rollback()
                if attempt == attempts:
                    self._logger.error(f"Store {operation} failed after {attempts} attempts: {exc}")
                    raise StoreUnavailableError(f"Store {operation} failed") from exc
                self._logger.warning(f"Store {operation} attempt {attempt} failed, retrying: {exc}")
                await asyncio.sleep(self._settings.DB_RETRY_DELAY_SECONDS * attempt)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except (SQLAlchemyError, OSError) as exc:
            self._logger.debug(f"Rollback after store failure also failed: {exc}")

    @staticmethod
    def _to_record(row: Optional[ShortLink]) -> Optional[ShortLinkRecord]:
        if row is None:
            return None
        return ShortLinkRecord.model_validate(row)
