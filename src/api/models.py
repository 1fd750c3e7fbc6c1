"""
Pydantic request and response models for the SyncPlans conflicts API.
"""

from datetime import datetime
from typing import Literal, Optional, Any

from pydantic import BaseModel, Field


ResolutionValue = Literal["keep_existing", "replace_with_new", "none"]


# =============================================================================
# Request Models
# =============================================================================


class EventRecord(BaseModel):
    """
    Raw stored event record.

    Deliberately permissive: malformed records are dropped by the
    normalizer rather than rejected by validation.
    """

    id: Optional[str] = None
    title: Optional[str] = None
    start: Optional[Any] = None
    end: Optional[Any] = None
    group_id: Optional[str] = None
    group_type: Optional[str] = None
    notes: Optional[str] = None


class GroupRecord(BaseModel):
    """A group membership with its raw stored type."""

    id: str
    type: Optional[str] = None
    name: Optional[str] = None


class CandidateEvent(BaseModel):
    """Event about to be created or updated."""

    title: str = Field(default="", max_length=200)
    start: Optional[str] = Field(None, description="Start time (ISO 8601)")
    end: Optional[str] = Field(None, description="End time (ISO 8601)")
    group_id: Optional[str] = None
    group_type: Optional[str] = None
    notes: Optional[str] = None


class DetectConflictsRequest(BaseModel):
    """Event snapshot to compute conflicts for."""

    events: list[EventRecord] = Field(default_factory=list)
    groups: list[GroupRecord] = Field(default_factory=list)
    active_group_id: Optional[str] = Field(
        None,
        description="Restrict to this group's events plus personal ones",
    )
    focus_event_id: Optional[str] = Field(
        None,
        description="Only conflicts involving this event",
    )
    include_ignored: bool = Field(
        default=False,
        description="Include conflicts the user dismissed with 'keep both'",
    )


class PreflightRequest(BaseModel):
    """Candidate event plus the current snapshot."""

    candidate: CandidateEvent
    events: list[EventRecord] = Field(default_factory=list)
    groups: list[GroupRecord] = Field(default_factory=list)
    editing_event_id: Optional[str] = None
    active_group_id: Optional[str] = None


class SetResolutionRequest(BaseModel):
    """User's pick for one conflict."""

    resolution: ResolutionValue


class IgnoreConflictsRequest(BaseModel):
    """Conflict ids to suppress without a durable resolution."""

    conflict_ids: list[str] = Field(default_factory=list)


class PlanRequest(BaseModel):
    """Snapshot to derive the apply plan for."""

    events: list[EventRecord] = Field(default_factory=list)
    groups: list[GroupRecord] = Field(default_factory=list)
    active_group_id: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================


class EventOut(BaseModel):
    """Canonical event as rendered in conflict views."""

    id: str
    title: str
    start: datetime
    end: datetime
    group_id: Optional[str] = None
    group_type: str
    group_label: str
    notes: Optional[str] = None


class ConflictOut(BaseModel):
    """One conflict with both sides attached when available."""

    id: str
    kind: str = "overlap"
    existing_event_id: str
    incoming_event_id: str
    overlap_start: datetime
    overlap_end: datetime
    overlap_minutes: int
    existing_event: Optional[EventOut] = None
    incoming_event: Optional[EventOut] = None
    resolution: Optional[ResolutionValue] = None
    resolution_label: str = "Pending"


class ConflictSummaryOut(BaseModel):
    total: int = 0
    decided: int = 0
    pending: int = 0


class DetectConflictsResponse(BaseModel):
    conflicts: list[ConflictOut] = Field(default_factory=list)
    summary: ConflictSummaryOut = Field(default_factory=ConflictSummaryOut)


class PreflightResponse(BaseModel):
    """Preflight outcome; `clear` means save directly."""

    clear: bool
    skipped: bool = False
    failed_open: bool = False
    synthetic_id: Optional[str] = None
    default_choice: Literal["edit", "keep_existing", "replace_with_new", "keep_both"] = "edit"
    conflicts: list[ConflictOut] = Field(default_factory=list)
    existing_ids_to_replace: list[str] = Field(default_factory=list)


class ResolutionsResponse(BaseModel):
    resolutions: dict[str, ResolutionValue] = Field(default_factory=dict)


class SetResolutionResponse(BaseModel):
    conflict_id: str
    resolution: ResolutionValue
    message: str


class ClearResolutionsResponse(BaseModel):
    cleared: int


class IgnoreConflictsResponse(BaseModel):
    stored: bool
    ignored_count: int


class PlanResponse(BaseModel):
    total: int
    decided: int
    pending: int
    skipped: int
    delete_ids: list[str] = Field(default_factory=list)
    can_apply: bool


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    version: str
    database_connected: bool


class ErrorResponse(BaseModel):
    """Consistent error body; `retryable` drives the UI's retry notice."""

    error_type: str
    message: str
    retryable: bool = False
    request_id: Optional[str] = None
