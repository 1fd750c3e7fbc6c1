"""
Resolution store bridge.

Reads and writes a user's conflict id -> resolution map through the database,
and implements the optimistic update + rollback flow the compare screen uses
when a user picks an option.

Reads never raise: a failed read degrades to an empty map ("all pending").
Writes raise ResolutionStoreError so the optimistic state can roll back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.resolutions import ConflictResolution
from src.services.conflicts import Resolution, resolution_hint
from src.services.exceptions import ConflictEngineError, ResolutionStoreError

logger = logging.getLogger(__name__)


async def get_resolution_row(
    session: AsyncSession,
    user_id: str,
    conflict_id: str,
) -> Optional[ConflictResolution]:
    """
    Get the stored resolution row for one conflict.

    Args:
        session: Database session
        user_id: The user's ID
        conflict_id: Stable conflict id

    Returns:
        ConflictResolution if found, None otherwise
    """
    stmt = select(ConflictResolution).where(
        ConflictResolution.user_id == user_id,
        ConflictResolution.conflict_id == conflict_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


class ResolutionStore:
    """
    Per-user resolution persistence.

    Last write wins: there is no locking, and concurrent writes for the same
    conflict simply overwrite each other.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_resolutions(self, user_id: str) -> dict[str, Resolution]:
        """
        Get every resolution the user has recorded.

        Args:
            user_id: The user's ID

        Returns:
            Map of conflict id -> Resolution (empty on read failure)
        """
        stmt = select(ConflictResolution.conflict_id, ConflictResolution.resolution).where(
            ConflictResolution.user_id == user_id,
        )

        try:
            result = await self._session.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.warning(f"Could not load conflict resolutions for user {user_id}: {e}")
            return {}

        resolutions: dict[str, Resolution] = {}
        for conflict_id, value in rows:
            try:
                resolutions[str(conflict_id)] = Resolution(value)
            except ValueError:
                logger.debug(f"Skipping unknown resolution '{value}' for {conflict_id}")
        return resolutions

    async def set_resolution(
        self,
        user_id: str,
        conflict_id: str,
        resolution: Resolution,
    ) -> None:
        """
        Insert or update the resolution for a conflict.

        Args:
            user_id: The user's ID
            conflict_id: Stable conflict id
            resolution: The chosen resolution

        Raises:
            ResolutionStoreError: If the write could not be committed
        """
        resolution = Resolution(resolution)

        try:
            await self._upsert(user_id, conflict_id, resolution)
        except IntegrityError:
            # A concurrent insert won the race; overwrite it instead
            await self._session.rollback()
            try:
                await self._upsert(user_id, conflict_id, resolution)
            except SQLAlchemyError as e:
                await self._session.rollback()
                raise ResolutionStoreError(
                    f"Could not save resolution for {conflict_id}", original_error=e
                ) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise ResolutionStoreError(
                f"Could not save resolution for {conflict_id}", original_error=e
            ) from e

        logger.info(f"Saved resolution '{resolution.value}' for {conflict_id} (user {user_id})")

    async def _upsert(self, user_id: str, conflict_id: str, resolution: Resolution) -> None:
        existing = await get_resolution_row(self._session, user_id, conflict_id)

        if existing:
            existing.resolution = resolution.value
            existing.updated_at = datetime.now(timezone.utc)
        else:
            self._session.add(
                ConflictResolution(
                    user_id=user_id,
                    conflict_id=conflict_id,
                    resolution=resolution.value,
                )
            )
        await self._session.commit()

    async def clear_resolutions(self, user_id: str) -> int:
        """
        Delete all of a user's resolutions (reset after applying a plan).

        Returns:
            Number of rows removed

        Raises:
            ResolutionStoreError: If the delete could not be committed
        """
        stmt = delete(ConflictResolution).where(ConflictResolution.user_id == user_id)
        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise ResolutionStoreError(
                f"Could not clear resolutions for user {user_id}", original_error=e
            ) from e

        logger.info(f"Cleared {result.rowcount} resolution(s) for user {user_id}")
        return result.rowcount or 0


# =============================================================================
# Optimistic update + rollback
# =============================================================================


class WriteState(str, Enum):
    """Lifecycle of one optimistic resolution write."""

    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class Notice:
    """Dismissible message shown to the user after a write settles."""

    title: str
    message: str
    retryable: bool = False


@dataclass
class OptimisticWrite:
    """
    One resolution choice applied locally before it is persisted.

    Transitions: pending -> committed | rolled_back. Settled writes cannot
    transition again.
    """

    conflict_id: str
    resolution: Resolution
    previous: Optional[Resolution] = None
    state: WriteState = WriteState.PENDING
    error: Optional[Exception] = None

    def commit(self) -> None:
        self._transition(WriteState.COMMITTED)

    def roll_back(self, error: Optional[Exception] = None) -> None:
        self._transition(WriteState.ROLLED_BACK)
        self.error = error

    def _transition(self, target: WriteState) -> None:
        if self.state != WriteState.PENDING:
            raise RuntimeError(
                f"Write for {self.conflict_id} already {self.state.value}, cannot become {target.value}"
            )
        self.state = target


Writer = Callable[[str, Resolution], Awaitable[None]]


@dataclass
class ResolutionBoard:
    """
    Local resolution state for one user, with optimistic writes.

    `resolutions` is what the UI renders. `choose()` applies the pick
    immediately, persists it through `writer`, and restores the previous
    value if the write fails. A failed write only reverts the local value
    if no newer pick for the same conflict has been made since.
    """

    resolutions: dict[str, Resolution] = field(default_factory=dict)
    _latest: dict[str, OptimisticWrite] = field(default_factory=dict, repr=False)

    def begin(self, conflict_id: str, resolution: Resolution) -> OptimisticWrite:
        """Apply a pick locally and return its pending write."""
        write = OptimisticWrite(
            conflict_id=conflict_id,
            resolution=Resolution(resolution),
            previous=self.resolutions.get(conflict_id),
        )
        self.resolutions[conflict_id] = write.resolution
        self._latest[conflict_id] = write
        return write

    def settle(self, write: OptimisticWrite, error: Optional[Exception] = None) -> Notice:
        """Commit or roll back a pending write and build the user notice."""
        if error is None:
            write.commit()
            return Notice(title="Decision saved", message=resolution_hint(write.resolution))

        write.roll_back(error)
        if self._latest.get(write.conflict_id) is write:
            if write.previous is None:
                self.resolutions.pop(write.conflict_id, None)
            else:
                self.resolutions[write.conflict_id] = write.previous
        if isinstance(error, ConflictEngineError):
            return Notice(title="Could not save", message=error.message, retryable=error.retryable)
        # Transport and driver errors from other writers are worth retrying
        return Notice(
            title="Could not save",
            message="Check your connection and try again.",
            retryable=True,
        )

    async def choose(
        self,
        conflict_id: str,
        resolution: Resolution,
        writer: Writer,
    ) -> tuple[OptimisticWrite, Notice]:
        """
        Optimistically record a resolution.

        Args:
            conflict_id: Stable conflict id
            resolution: The user's pick
            writer: Async persistence call, e.g. a bound ResolutionStore.set_resolution

        Returns:
            The settled write and the notice to display
        """
        write = self.begin(conflict_id, resolution)
        try:
            await writer(conflict_id, write.resolution)
        except Exception as e:
            logger.warning(f"Rolling back resolution for {conflict_id}: {e}")
            return write, self.settle(write, e)
        return write, self.settle(write)
