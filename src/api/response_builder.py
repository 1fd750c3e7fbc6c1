"""
Response builder utilities for transforming engine results to API responses.
"""

from typing import Mapping, Optional, Sequence

from src.api.models import (
    ConflictOut,
    ConflictSummaryOut,
    DetectConflictsResponse,
    EventOut,
    EventRecord,
    GroupRecord,
    PlanResponse,
    PreflightResponse,
)
from src.integrations.base import CalendarEvent, GroupMembership
from src.services.conflicts import (
    Conflict,
    Resolution,
    ResolutionPlan,
    resolution_for_conflict,
    resolution_label,
    summarize_conflicts,
)
from src.services.normalizer import group_label
from src.services.preflight import PreflightChoice, PreflightResult


def to_records(events: Sequence[EventRecord]) -> list[dict]:
    """Raw records for the normalizer."""
    return [e.model_dump() for e in events]


def to_memberships(groups: Sequence[GroupRecord]) -> list[GroupMembership]:
    return [GroupMembership(id=g.id, type=g.type, name=g.name) for g in groups]


def event_to_out(event: Optional[CalendarEvent]) -> Optional[EventOut]:
    """Render a canonical event (None stays None)."""
    if event is None:
        return None
    return EventOut(
        id=event.id,
        title=event.title,
        start=event.start,
        end=event.end,
        group_id=event.group_id,
        group_type=event.group_type.value,
        group_label=group_label(event.group_type),
        notes=event.notes,
    )


def conflict_to_out(
    conflict: Conflict,
    resolutions: Optional[Mapping[str, Resolution]] = None,
) -> ConflictOut:
    """Render a conflict together with the user's decision, if any."""
    resolution = resolution_for_conflict(conflict, resolutions or {})
    return ConflictOut(
        id=conflict.id,
        kind=conflict.kind,
        existing_event_id=conflict.existing_event_id,
        incoming_event_id=conflict.incoming_event_id,
        overlap_start=conflict.overlap_start,
        overlap_end=conflict.overlap_end,
        overlap_minutes=conflict.overlap_minutes,
        existing_event=event_to_out(conflict.existing_event),
        incoming_event=event_to_out(conflict.incoming_event),
        resolution=resolution.value if resolution else None,
        resolution_label=resolution_label(resolution),
    )


def build_detect_response(
    conflicts: Sequence[Conflict],
    resolutions: Mapping[str, Resolution],
) -> DetectConflictsResponse:
    summary = summarize_conflicts(conflicts, resolutions)
    return DetectConflictsResponse(
        conflicts=[conflict_to_out(c, resolutions) for c in conflicts],
        summary=ConflictSummaryOut(
            total=summary.total,
            decided=summary.decided,
            pending=summary.pending,
        ),
    )


def build_preflight_response(
    result: PreflightResult,
    default_choice: PreflightChoice,
) -> PreflightResponse:
    return PreflightResponse(
        clear=result.is_clear,
        skipped=result.skipped,
        failed_open=result.failed_open,
        synthetic_id=result.synthetic_id,
        default_choice=default_choice.value,
        conflicts=[conflict_to_out(c) for c in result.conflicts],
        existing_ids_to_replace=result.existing_ids_to_replace,
    )


def build_plan_response(plan: ResolutionPlan) -> PlanResponse:
    return PlanResponse(
        total=plan.total,
        decided=plan.decided,
        pending=plan.pending,
        skipped=plan.skipped,
        delete_ids=plan.delete_ids,
        can_apply=plan.can_apply,
    )
