"""
Unit tests for the resolution store and optimistic writes.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from src.models.resolutions import ConflictResolution
from src.services.conflicts import Resolution
from src.services.exceptions import ResolutionStoreError
from src.services.resolutions import (
    OptimisticWrite,
    ResolutionBoard,
    ResolutionStore,
    WriteState,
    get_resolution_row,
)


class TestResolutionStore:
    """Test ResolutionStore against an in-memory database."""

    @pytest.mark.asyncio
    async def test_empty_for_new_user(self, async_session):
        store = ResolutionStore(async_session)
        assert await store.get_resolutions("user-1") == {}

    @pytest.mark.asyncio
    async def test_set_then_get(self, async_session):
        store = ResolutionStore(async_session)

        await store.set_resolution("user-1", "cx::a::b", Resolution.KEEP_EXISTING)

        assert await store.get_resolutions("user-1") == {"cx::a::b": Resolution.KEEP_EXISTING}

    @pytest.mark.asyncio
    async def test_overwrite_keeps_one_row(self, async_session):
        """Last write wins, as an update of the same row."""
        store = ResolutionStore(async_session)

        await store.set_resolution("user-1", "cx::a::b", Resolution.KEEP_EXISTING)
        await store.set_resolution("user-1", "cx::a::b", "replace_with_new")

        resolutions = await store.get_resolutions("user-1")
        assert resolutions == {"cx::a::b": Resolution.REPLACE_WITH_NEW}

        row = await get_resolution_row(async_session, "user-1", "cx::a::b")
        assert row.resolution == "replace_with_new"
        assert row.updated_at is not None

    @pytest.mark.asyncio
    async def test_resolutions_are_per_user(self, async_session):
        store = ResolutionStore(async_session)

        await store.set_resolution("user-1", "cx::a::b", Resolution.NONE)

        assert await store.get_resolutions("user-2") == {}

    @pytest.mark.asyncio
    async def test_unknown_values_are_skipped(self, async_session):
        async_session.add(ConflictResolution(user_id="user-1", conflict_id="cx::a::b", resolution="maybe"))
        async_session.add(ConflictResolution(user_id="user-1", conflict_id="cx::c::d", resolution="none"))
        await async_session.commit()

        resolutions = await ResolutionStore(async_session).get_resolutions("user-1")

        assert resolutions == {"cx::c::d": Resolution.NONE}

    @pytest.mark.asyncio
    async def test_clear_resolutions(self, async_session):
        store = ResolutionStore(async_session)
        await store.set_resolution("user-1", "cx::a::b", Resolution.NONE)
        await store.set_resolution("user-1", "cx::c::d", Resolution.KEEP_EXISTING)
        await store.set_resolution("user-2", "cx::a::b", Resolution.NONE)

        cleared = await store.clear_resolutions("user-1")

        assert cleared == 2
        assert await store.get_resolutions("user-1") == {}
        assert await store.get_resolutions("user-2") == {"cx::a::b": Resolution.NONE}

    @pytest.mark.asyncio
    async def test_set_after_clear_stores_new_value(self, async_session):
        """Cleared rows are gone, so the pair can be written again."""
        store = ResolutionStore(async_session)
        await store.set_resolution("user-1", "cx::a::b", Resolution.KEEP_EXISTING)
        await store.clear_resolutions("user-1")

        await store.set_resolution("user-1", "cx::a::b", Resolution.REPLACE_WITH_NEW)

        assert await store.get_resolutions("user-1") == {"cx::a::b": Resolution.REPLACE_WITH_NEW}

    @pytest.mark.asyncio
    async def test_repeated_writes_keep_one_row(self, async_session):
        store = ResolutionStore(async_session)
        for resolution in (Resolution.NONE, Resolution.KEEP_EXISTING, Resolution.NONE):
            await store.set_resolution("user-1", "cx::a::b", resolution)

        result = await async_session.execute(select(ConflictResolution))
        rows = result.scalars().all()

        assert len(rows) == 1
        assert rows[0].resolution == "none"

    @pytest.mark.asyncio
    async def test_read_failure_reads_as_all_pending(self):
        session = AsyncMock()
        session.execute.side_effect = SQLAlchemyError("database is down")

        assert await ResolutionStore(session).get_resolutions("user-1") == {}

    @pytest.mark.asyncio
    async def test_write_failure_raises_retryable(self):
        session = AsyncMock()
        session.add = lambda obj: None
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("locked"))

        with pytest.raises(ResolutionStoreError) as exc_info:
            await ResolutionStore(session).set_resolution("user-1", "cx::a::b", Resolution.NONE)

        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.original_error, OperationalError)
        session.rollback.assert_awaited()


class TestOptimisticWrite:
    """Test the pending -> committed | rolled_back transitions."""

    def test_commit(self):
        write = OptimisticWrite(conflict_id="cx::a::b", resolution=Resolution.NONE)
        write.commit()
        assert write.state == WriteState.COMMITTED

    def test_settled_write_cannot_transition(self):
        write = OptimisticWrite(conflict_id="cx::a::b", resolution=Resolution.NONE)
        write.roll_back(RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            write.commit()
        assert write.state == WriteState.ROLLED_BACK


class TestResolutionBoard:
    """Test ResolutionBoard.choose()."""

    @pytest.mark.asyncio
    async def test_successful_write_commits(self):
        board = ResolutionBoard()
        writer = AsyncMock()

        write, notice = await board.choose("cx::a::b", Resolution.KEEP_EXISTING, writer)

        writer.assert_awaited_once_with("cx::a::b", Resolution.KEEP_EXISTING)
        assert write.state == WriteState.COMMITTED
        assert board.resolutions == {"cx::a::b": Resolution.KEEP_EXISTING}
        assert notice.title == "Decision saved"
        assert notice.message == "Event B will be removed"

    @pytest.mark.asyncio
    async def test_failed_write_restores_previous(self):
        board = ResolutionBoard(resolutions={"cx::a::b": Resolution.NONE})
        writer = AsyncMock(side_effect=ResolutionStoreError("Could not save resolution"))

        write, notice = await board.choose("cx::a::b", Resolution.REPLACE_WITH_NEW, writer)

        assert write.state == WriteState.ROLLED_BACK
        assert board.resolutions == {"cx::a::b": Resolution.NONE}
        assert notice.title == "Could not save"
        assert notice.retryable is True

    @pytest.mark.asyncio
    async def test_failed_first_write_clears_entry(self):
        board = ResolutionBoard()
        writer = AsyncMock(side_effect=ResolutionStoreError("offline"))

        await board.choose("cx::a::b", Resolution.NONE, writer)

        assert "cx::a::b" not in board.resolutions

    @pytest.mark.asyncio
    async def test_transport_failure_rolls_back_with_retry_notice(self):
        """Errors outside the engine still roll back instead of escaping."""
        board = ResolutionBoard(resolutions={"cx::a::b": Resolution.NONE})
        writer = AsyncMock(side_effect=ConnectionError("network down"))

        write, notice = await board.choose("cx::a::b", Resolution.KEEP_EXISTING, writer)

        assert write.state == WriteState.ROLLED_BACK
        assert isinstance(write.error, ConnectionError)
        assert board.resolutions == {"cx::a::b": Resolution.NONE}
        assert notice.title == "Could not save"
        assert notice.message == "Check your connection and try again."
        assert notice.retryable is True

    def test_stale_failure_does_not_clobber_newer_pick(self):
        board = ResolutionBoard()
        first = board.begin("cx::a::b", Resolution.KEEP_EXISTING)
        second = board.begin("cx::a::b", Resolution.REPLACE_WITH_NEW)

        board.settle(first, ResolutionStoreError("timeout"))

        assert first.state == WriteState.ROLLED_BACK
        assert board.resolutions["cx::a::b"] == Resolution.REPLACE_WITH_NEW

        board.settle(second)
        assert second.state == WriteState.COMMITTED
