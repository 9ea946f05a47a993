import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from eggforge.domain.exceptions import PersistenceUnavailable
from eggforge.storage.guard import StoreGuard


def _db_error() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("database is locked"))


@pytest.mark.asyncio()
async def test_call_returns_result():
    guard = StoreGuard()
    assert await guard.call("ok", AsyncMock(return_value=3)) == 3


@pytest.mark.asyncio()
async def test_call_times_out():
    async def slow() -> None:
        await asyncio.sleep(1)

    guard = StoreGuard(timeout_seconds=0.01)
    with pytest.raises(PersistenceUnavailable):
        await guard.call("slow", slow)


@pytest.mark.asyncio()
async def test_call_maps_database_errors_without_retry():
    mock_call = AsyncMock(side_effect=_db_error())
    with pytest.raises(PersistenceUnavailable):
        await StoreGuard(read_retries=3).call("write", mock_call)
    assert mock_call.await_count == 1


@pytest.mark.asyncio()
async def test_read_retries_then_succeeds():
    mock_call = AsyncMock(side_effect=[_db_error(), "value"])
    result = await StoreGuard(read_retries=2).read("read", mock_call)
    assert result == "value"
    assert mock_call.await_count == 2


@pytest.mark.asyncio()
async def test_read_gives_up_after_retries():
    mock_call = AsyncMock(side_effect=_db_error())
    with pytest.raises(PersistenceUnavailable):
        await StoreGuard(read_retries=1).read("read", mock_call)
    assert mock_call.await_count == 2


def test_guard_rejects_bad_settings():
    with pytest.raises(ValueError):
        StoreGuard(timeout_seconds=0)
    with pytest.raises(ValueError):
        StoreGuard(read_retries=-1)
