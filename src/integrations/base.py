"""
Canonical event types and collaborator protocols.

Defines the in-memory shapes the conflict engine works on and the interfaces
of the external sources it reads from (events, group memberships).
"""

from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, Sequence


class GroupType(str, Enum):
    """Canonical group type of an event."""

    PERSONAL = "personal"
    PAIR = "pair"
    FAMILY = "family"


@dataclass(frozen=True)
class CalendarEvent:
    """
    Normalized event representation used by the conflict engine.

    Built by the normalizer from raw stored records. The engine only ever
    reads these; it never mutates them.
    """

    id: str
    title: str
    start: datetime
    end: datetime
    group_id: Optional[str] = None
    group_type: GroupType = GroupType.PERSONAL
    notes: Optional[str] = None

    @property
    def is_personal(self) -> bool:
        return self.group_id is None


@dataclass
class GroupMembership:
    """A group the current user belongs to, with its raw stored type."""

    id: str
    type: Optional[str] = None
    name: Optional[str] = None


@dataclass
class EventCandidate:
    """
    An event the user is about to create or update.

    Not yet persisted, so it has no id of its own.
    """

    title: str
    start: Any
    end: Any
    group_id: Optional[str] = None
    group_type: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class GroupMode:
    """
    Active group context chosen in the UI.

    Passed explicitly to anything that needs it instead of living in
    module-level state.
    """

    group_id: Optional[str] = None
    include_personal: bool = True


class EventSource(Protocol):
    """
    Source of the current user's visible events (personal + memberships).

    May return a partial or empty list on failure. Records are raw mappings
    with at least `id`, `start`, `end` and optionally `title`, `notes`,
    `group_id`.
    """

    @abstractmethod
    async def list_events(self, user_id: str) -> Sequence[dict]:
        """
        Get the raw event records visible to a user.

        Args:
            user_id: The user whose events to load

        Returns:
            Sequence of raw event records
        """
        ...


class GroupSource(Protocol):
    """Source of the current user's group memberships."""

    @abstractmethod
    async def list_groups(self, user_id: str) -> Sequence[GroupMembership]:
        """
        Get the groups a user belongs to.

        Args:
            user_id: The user whose memberships to load

        Returns:
            Sequence of memberships with their raw type
        """
        ...
