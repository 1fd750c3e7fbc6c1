"""
Conflict identity and attachment.

Turns raw overlap pairs into Conflict objects with a stable, order-independent
id, attaches the full events for display, and derives what the user's
resolutions mean for the current snapshot.

Provides:
- conflict_key(): the stable id for a pair of event ids
- compute_visible_conflicts(): detector + identity in one call
- attach_events(): re-lookup of both sides by id
- resolution_for_conflict() / build_resolution_plan(): apply-plan derivation
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from src.integrations.base import CalendarEvent
from src.services.overlaps import OverlapPair, detect_overlaps

CONFLICT_KEY_PREFIX = "cx"
CONFLICT_KEY_SEPARATOR = "::"


class Resolution(str, Enum):
    """A user's durable decision for one conflict."""

    KEEP_EXISTING = "keep_existing"
    REPLACE_WITH_NEW = "replace_with_new"
    NONE = "none"


@dataclass(frozen=True)
class Conflict:
    """
    One detected overlap between exactly two events.

    `existing`/`incoming` is a display convention, except in preflight where
    `incoming` is always the candidate being saved. The attached events are
    None when the referenced event is no longer in the snapshot.
    """

    id: str
    existing_event_id: str
    incoming_event_id: str
    overlap_start: datetime
    overlap_end: datetime
    kind: str = "overlap"
    existing_event: Optional[CalendarEvent] = field(default=None, compare=False)
    incoming_event: Optional[CalendarEvent] = field(default=None, compare=False)

    @property
    def overlap_duration(self) -> timedelta:
        return self.overlap_end - self.overlap_start

    @property
    def overlap_minutes(self) -> int:
        return max(1, round(self.overlap_duration.total_seconds() / 60))

    def involves(self, event_id: str) -> bool:
        return str(event_id) in (self.existing_event_id, self.incoming_event_id)

    def other_side(self, event_id: str) -> Optional[str]:
        """Id of the participant that is not `event_id` (None if not involved)."""
        if self.existing_event_id == event_id:
            return self.incoming_event_id
        if self.incoming_event_id == event_id:
            return self.existing_event_id
        return None


def conflict_key(a_id: str, b_id: str) -> str:
    """
    Stable id for a pair of events.

    Sorting the two ids first makes the key independent of argument order,
    so the same pair always maps to the same resolution record.

    Example:
        >>> conflict_key("b", "a") == conflict_key("a", "b") == "cx::a::b"
        True
    """
    low, high = sorted((str(a_id), str(b_id)))
    return CONFLICT_KEY_SEPARATOR.join((CONFLICT_KEY_PREFIX, low, high))


def choose_existing_incoming(
    a: CalendarEvent,
    b: CalendarEvent,
) -> tuple[CalendarEvent, CalendarEvent]:
    """
    Decide which side is displayed as existing.

    The earlier start is existing; equal starts go to the smaller id.
    """
    if a.start < b.start:
        return a, b
    if b.start < a.start:
        return b, a
    return (a, b) if str(a.id) < str(b.id) else (b, a)


def build_conflicts(pairs: Iterable[OverlapPair]) -> list[Conflict]:
    """
    Assign stable ids to overlap pairs.

    A pair reported more than once yields a single conflict.
    """
    conflicts = []
    seen: set[str] = set()

    for pair in pairs:
        existing, incoming = choose_existing_incoming(pair.a, pair.b)
        cid = conflict_key(existing.id, incoming.id)
        if cid in seen:
            continue
        seen.add(cid)

        conflicts.append(
            Conflict(
                id=cid,
                existing_event_id=existing.id,
                incoming_event_id=incoming.id,
                overlap_start=pair.overlap_start,
                overlap_end=pair.overlap_end,
                existing_event=existing,
                incoming_event=incoming,
            )
        )

    return conflicts


def sort_conflicts(conflicts: Iterable[Conflict]) -> list[Conflict]:
    """Longest overlap first, then by id."""
    return sorted(conflicts, key=lambda c: (-c.overlap_duration, c.id))


def compute_visible_conflicts(events: Optional[Iterable[CalendarEvent]]) -> list[Conflict]:
    """
    Detect and identify every conflict in a canonical event set.

    Deterministic and side-effect free: the same snapshot, in any order,
    yields the same conflicts with the same ids.

    Args:
        events: Canonical events (empty or None means no conflicts)

    Returns:
        Conflicts with both events attached, longest overlap first
    """
    if not events:
        return []
    return sort_conflicts(build_conflicts(detect_overlaps(events)))


def attach_events(
    conflicts: Iterable[Conflict],
    events: Optional[Iterable[CalendarEvent]],
) -> list[Conflict]:
    """
    Re-attach full event objects by id.

    Events found in `events` win; otherwise whatever was already attached is
    kept. A side that cannot be found is None and does not stop the rest of
    the list from being attached.
    """
    by_id = {str(e.id): e for e in events or [] if e is not None}

    attached = []
    for c in conflicts:
        attached.append(
            replace(
                c,
                existing_event=by_id.get(c.existing_event_id, c.existing_event),
                incoming_event=by_id.get(c.incoming_event_id, c.incoming_event),
            )
        )
    return attached


def conflicts_for_event(conflicts: Iterable[Conflict], event_id: Optional[str]) -> list[Conflict]:
    """Conflicts in which `event_id` takes part (all conflicts when None)."""
    conflicts = list(conflicts)
    if event_id is None:
        return conflicts
    return [c for c in conflicts if c.involves(str(event_id))]


def filter_ignored_conflicts(
    conflicts: Iterable[Conflict],
    ignored: Optional[Iterable[str]],
) -> list[Conflict]:
    """Drop conflicts whose id is in the ignored set."""
    ignored_ids = {str(i) for i in ignored or []}
    if not ignored_ids:
        return list(conflicts)
    return [c for c in conflicts if c.id not in ignored_ids]


# =============================================================================
# Resolutions applied to a snapshot
# =============================================================================


def resolution_for_conflict(
    conflict: Conflict,
    resolutions: Mapping[str, Resolution],
) -> Optional[Resolution]:
    """
    Find the stored decision for a conflict.

    Lookup order: exact id, the stable pair key, then any older key that
    extends the pair key with extra segments (`cx::a::b::...`).
    """
    exact = resolutions.get(conflict.id)
    if exact:
        return Resolution(exact)

    if not conflict.existing_event_id or not conflict.incoming_event_id:
        return None

    stable = conflict_key(conflict.existing_event_id, conflict.incoming_event_id)
    if resolutions.get(stable):
        return Resolution(resolutions[stable])

    legacy_prefix = stable + CONFLICT_KEY_SEPARATOR
    for key, value in resolutions.items():
        if key.startswith(legacy_prefix) and value:
            return Resolution(value)
    return None


@dataclass
class ConflictSummary:
    """Counters shown above the conflict list."""

    total: int = 0
    decided: int = 0
    pending: int = 0


@dataclass
class ResolutionPlan:
    """
    What applying the user's decisions would do.

    The engine never deletes events; callers hand `delete_ids` to the
    event store.
    """

    total: int = 0
    decided: int = 0
    pending: int = 0
    skipped: int = 0
    delete_ids: list[str] = field(default_factory=list)

    @property
    def can_apply(self) -> bool:
        return self.decided > 0


def summarize_conflicts(
    conflicts: Sequence[Conflict],
    resolutions: Mapping[str, Resolution],
) -> ConflictSummary:
    """Count decided and pending conflicts."""
    decided = sum(1 for c in conflicts if resolution_for_conflict(c, resolutions))
    return ConflictSummary(
        total=len(conflicts),
        decided=decided,
        pending=max(0, len(conflicts) - decided),
    )


def build_resolution_plan(
    conflicts: Sequence[Conflict],
    resolutions: Mapping[str, Resolution],
) -> ResolutionPlan:
    """
    Derive the apply plan for a set of conflicts.

    - keep_existing: the incoming side is deleted
    - replace_with_new: the existing side is deleted
    - none: both kept, counted as skipped

    Args:
        conflicts: Conflicts of the current snapshot
        resolutions: The user's conflict id -> resolution map

    Returns:
        ResolutionPlan with counters and the ids to delete (first-seen order)
    """
    plan = ResolutionPlan(total=len(conflicts))
    delete_ids: dict[str, None] = {}

    for c in conflicts:
        resolution = resolution_for_conflict(c, resolutions)
        if resolution is None:
            plan.pending += 1
            continue

        plan.decided += 1
        if resolution == Resolution.NONE:
            plan.skipped += 1
        elif resolution == Resolution.KEEP_EXISTING and c.incoming_event_id:
            delete_ids.setdefault(c.incoming_event_id, None)
        elif resolution == Resolution.REPLACE_WITH_NEW and c.existing_event_id:
            delete_ids.setdefault(c.existing_event_id, None)

    plan.delete_ids = list(delete_ids)
    return plan


# =============================================================================
# Display helpers
# =============================================================================


_RESOLUTION_LABELS = {
    Resolution.KEEP_EXISTING: "Keep A",
    Resolution.REPLACE_WITH_NEW: "Keep B",
    Resolution.NONE: "Keep both",
}

_RESOLUTION_HINTS = {
    Resolution.KEEP_EXISTING: "Event B will be removed",
    Resolution.REPLACE_WITH_NEW: "Event A will be removed",
    Resolution.NONE: "Both events will be kept",
}


def resolution_label(resolution: Optional[Resolution]) -> str:
    if not resolution:
        return "Pending"
    return _RESOLUTION_LABELS[Resolution(resolution)]


def resolution_hint(resolution: Optional[Resolution]) -> str:
    if not resolution:
        return "You haven't decided yet"
    return _RESOLUTION_HINTS[Resolution(resolution)]


def format_range(start: Optional[datetime], end: Optional[datetime]) -> str:
    """
    Human-readable time range.

    Same-day ranges show the date once: `Sun 01 Mar · 10:00 - 11:00`.
    """
    if start is None or end is None:
        return "Invalid date"

    if start.date() == end.date():
        return f"{start:%a %d %b} · {start:%H:%M} - {end:%H:%M}"
    return f"{start:%a %d %b %H:%M} → {end:%a %d %b %H:%M}"
