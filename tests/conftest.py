"""
Pytest configuration and fixtures for SyncPlans tests.

Provides event factories, an async database session and a fresh
ignored-conflict store for every test.
"""

import os

# Must be set before src.database is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("TIMEZONE", "UTC")

from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.dependencies import reset_ignored_store
from src.integrations.base import CalendarEvent, GroupType
from src.models.base import Base

from tests.helpers import at


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """
    Factory for canonical events.

    Usage:
        make_event("a", 9, 10)  # 09:00-10:00 personal event
    """

    def _make(
        event_id: str,
        start_hour: int,
        end_hour: int,
        start_minute: int = 0,
        end_minute: int = 0,
        group_id: str | None = None,
        group_type: GroupType = GroupType.PERSONAL,
        title: str | None = None,
    ) -> CalendarEvent:
        return CalendarEvent(
            id=event_id,
            title=title or f"Event {event_id}",
            start=at(start_hour, start_minute),
            end=at(end_hour, end_minute),
            group_id=group_id,
            group_type=group_type if group_id else GroupType.PERSONAL,
        )

    return _make


@pytest.fixture
def make_record() -> Callable[..., dict]:
    """Factory for raw stored event records (ISO strings, as the API sends them)."""

    def _make(event_id: str, start: str, end: str, **extra) -> dict:
        record = {"id": event_id, "title": f"Event {event_id}", "start": start, "end": end}
        record.update(extra)
        return record

    return _make


@pytest_asyncio.fixture
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a clean async database session for each test.

    Uses an in-memory SQLite database shared through a single connection.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()

    await engine.dispose()


@pytest.fixture(autouse=True)
def fresh_ignored_store():
    """The process-wide ignored set must not leak between tests."""
    reset_ignored_store()
    yield
    reset_ignored_store()
