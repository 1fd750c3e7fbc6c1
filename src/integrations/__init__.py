"""
Collaborator boundary for the conflict engine.

Provides the canonical event types and the source protocols that storage
backends implement.
"""

from src.integrations.base import (
    CalendarEvent,
    EventCandidate,
    EventSource,
    GroupMembership,
    GroupMode,
    GroupSource,
    GroupType,
)

__all__ = [
    "CalendarEvent",
    "EventCandidate",
    "EventSource",
    "GroupMembership",
    "GroupMode",
    "GroupSource",
    "GroupType",
]
