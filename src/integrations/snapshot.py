"""
Snapshot sources.

Event and group sources backed by data the caller already holds (for example
the records sent with an API request), so the same preflight wiring works
whether events come from storage or from the client.
"""

from typing import Any, Mapping, Optional, Sequence

from src.integrations.base import GroupMembership


class SnapshotEventSource:
    """EventSource over a fixed list of raw records."""

    def __init__(self, records: Optional[Sequence[Mapping[str, Any]]] = None):
        self._records = list(records or [])

    async def list_events(self, user_id: str) -> Sequence[Mapping[str, Any]]:
        return list(self._records)


class SnapshotGroupSource:
    """GroupSource over a fixed list of memberships."""

    def __init__(self, groups: Optional[Sequence[GroupMembership]] = None):
        self._groups = list(groups or [])

    async def list_groups(self, user_id: str) -> Sequence[GroupMembership]:
        return list(self._groups)
