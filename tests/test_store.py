"""Unit tests for the SQLAlchemy store against a mocked AsyncSession."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.config import Settings
from shortlink.errors import StoreUnavailableError, UniquenessConflictError
from shortlink.models import ShortLink
from shortlink.schemas import ShortLinkRecord
from shortlink.store import SQLAlchemyShortLinkStore


def _result(value) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def _operational_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


@pytest.fixture
def mock_database() -> AsyncMock:
    """Mock database session."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock(return_value=_result(None))
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def store(mock_database: AsyncMock) -> SQLAlchemyShortLinkStore:
    settings = Settings(DB_MAX_RETRY_COUNT=2, DB_RETRY_DELAY_SECONDS=0)
    return SQLAlchemyShortLinkStore(mock_database, settings)


@pytest.fixture
def record(sample_record_factory) -> ShortLinkRecord:
    return sample_record_factory("Ab3dE9x")


@pytest.mark.asyncio
async def test_insert_adds_row_and_commits(store, mock_database, record) -> None:
    await store.insert(record)

    mock_database.add.assert_called_once()
    row = mock_database.add.call_args.args[0]
    assert isinstance(row, ShortLink)
    assert row.code == record.code
    assert row.long_url == record.long_url
    assert row.id == record.id
    mock_database.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_insert_unique_violation_raises_conflict(store, mock_database, record) -> None:
    mock_database.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

    with pytest.raises(UniquenessConflictError) as exc_info:
        await store.insert(record)

    assert exc_info.value.code == "Ab3dE9x"
    mock_database.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_insert_connection_failure_raises_unavailable(store, mock_database, record) -> None:
    mock_database.commit.side_effect = _operational_error()

    with pytest.raises(StoreUnavailableError):
        await store.insert(record)

    mock_database.commit.assert_awaited_once()
    mock_database.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_insert_other_errors_propagate_unchanged(store, mock_database, record) -> None:
    mock_database.commit.side_effect = ProgrammingError("INSERT", {}, Exception("bad sql"))

    with pytest.raises(ProgrammingError):
        await store.insert(record)


@pytest.mark.asyncio
async def test_find_by_code_returns_record(store, mock_database, record) -> None:
    mock_database.execute.return_value = _result(ShortLink.from_record(record))

    found = await store.find_by_code("Ab3dE9x")

    assert found == record


@pytest.mark.asyncio
async def test_find_by_code_returns_none_when_missing(store) -> None:
    assert await store.find_by_code("ZZZZZZZ") is None


@pytest.mark.asyncio
async def test_find_by_long_url_returns_record(store, mock_database, record) -> None:
    mock_database.execute.return_value = _result(ShortLink.from_record(record))

    found = await store.find_by_long_url(record.long_url)

    assert found is not None
    assert found.code == "Ab3dE9x"


@pytest.mark.asyncio
@pytest.mark.parametrize("present", [True, False])
async def test_exists(store, mock_database, present) -> None:
    mock_database.execute.return_value = _result(present)
    assert await store.exists("Ab3dE9x") is present


@pytest.mark.asyncio
async def test_reads_are_retried_then_succeed(store, mock_database, record) -> None:
    mock_database.execute.side_effect = [
        _operational_error(),
        _result(ShortLink.from_record(record)),
    ]

    found = await store.find_by_code("Ab3dE9x")

    assert found == record
    assert mock_database.execute.await_count == 2
    mock_database.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_reads_exhaust_retries(store, mock_database) -> None:
    mock_database.execute.side_effect = _operational_error()

    with pytest.raises(StoreUnavailableError):
        await store.exists("Ab3dE9x")

    # one attempt plus DB_MAX_RETRY_COUNT retries
    assert mock_database.execute.await_count == 3


@pytest.mark.asyncio
async def test_read_timeout_is_unavailable(store, mock_database) -> None:
    mock_database.execute.side_effect = TimeoutError()

    with pytest.raises(StoreUnavailableError):
        await store.find_by_code("Ab3dE9x")


@pytest.mark.asyncio
async def test_ping(store, mock_database) -> None:
    await store.ping()
    mock_database.execute.assert_awaited_once()
