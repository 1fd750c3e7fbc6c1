"""
Overlap detector.

Finds every pair of canonical events whose time intervals intersect with a
strictly positive duration. Touching intervals (one ends exactly when the
other starts) are not overlaps.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from src.integrations.base import CalendarEvent


@dataclass(frozen=True)
class OverlapPair:
    """Two events and their intersection window."""

    a: CalendarEvent
    b: CalendarEvent
    overlap_start: datetime
    overlap_end: datetime

    @property
    def duration(self) -> timedelta:
        return self.overlap_end - self.overlap_start

    def involves(self, event_id: str) -> bool:
        return event_id in (self.a.id, self.b.id)


def overlap_window(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> tuple[datetime, datetime] | None:
    """
    Intersection of two intervals.

    Returns:
        (start, end) when the intersection has positive length, else None
    """
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start < end:
        return start, end
    return None


def detect_overlaps(events: Iterable[CalendarEvent]) -> list[OverlapPair]:
    """
    Compute every overlapping pair in an event list.

    Sorts by start (then id, for determinism) and scans forward from each
    event while the next one starts before it ends. Once a later event starts
    at or after `a.end`, no subsequent event can overlap `a`.

    Args:
        events: Canonical events (not mutated)

    Returns:
        Overlapping pairs in sweep order; `a` is never `b`
    """
    ordered = sorted(
        (e for e in events or [] if e is not None and e.end > e.start),
        key=lambda e: (e.start, e.id),
    )

    pairs: list[OverlapPair] = []
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if b.start >= a.end:
                break
            if b is a or b.id == a.id:
                continue
            window = overlap_window(a.start, a.end, b.start, b.end)
            if window is None:
                continue
            pairs.append(OverlapPair(a=a, b=b, overlap_start=window[0], overlap_end=window[1]))

    return pairs
