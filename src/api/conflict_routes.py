"""
Conflict API routes.

Thin HTTP wrapper over the conflict engine: detection over a snapshot,
preflight before saving, per-user resolutions and the ignored set.

Conflicts are advisory: persistence failures come back as retryable 503s,
and a failed resolution read is served as "all pending".
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import (
    get_ignored_store,
    get_resolution_store,
    get_user_id,
)
from src.api.models import (
    ClearResolutionsResponse,
    DetectConflictsRequest,
    DetectConflictsResponse,
    IgnoreConflictsRequest,
    IgnoreConflictsResponse,
    PlanRequest,
    PlanResponse,
    PreflightRequest,
    PreflightResponse,
    ResolutionsResponse,
    SetResolutionRequest,
    SetResolutionResponse,
)
from src.api.response_builder import (
    build_detect_response,
    build_plan_response,
    build_preflight_response,
    to_memberships,
    to_records,
)
from src.config import get_settings
from src.integrations.base import EventCandidate, GroupMode
from src.integrations.snapshot import SnapshotEventSource, SnapshotGroupSource
from src.services.conflicts import (
    Resolution,
    build_resolution_plan,
    compute_visible_conflicts,
    conflicts_for_event,
    filter_ignored_conflicts,
    resolution_hint,
)
from src.services.exceptions import PreflightInputError
from src.services.ignored import InMemoryIgnoredConflictStore, ignore_conflicts, load_ignored
from src.services.normalizer import filter_by_group_mode, normalize_events
from src.services.preflight import PreflightService, default_preflight_choice
from src.services.resolutions import ResolutionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conflicts", tags=["Conflicts"])


def _visible_events(events, groups, active_group_id):
    settings = get_settings()
    canonical = normalize_events(to_records(events), to_memberships(groups), settings.timezone)
    mode = GroupMode(group_id=active_group_id) if active_group_id else None
    return filter_by_group_mode(canonical, mode)


@router.post(
    "/detect",
    response_model=DetectConflictsResponse,
    summary="Detect conflicts in an event snapshot",
)
async def detect_conflicts(
    request: DetectConflictsRequest,
    user_id: str = Depends(get_user_id),
    store: ResolutionStore = Depends(get_resolution_store),
    ignored_store: InMemoryIgnoredConflictStore = Depends(get_ignored_store),
) -> DetectConflictsResponse:
    """
    Compute the user's visible conflicts.

    Each conflict carries the user's stored resolution, if any. Conflicts
    dismissed with "keep both" are hidden unless `include_ignored` is set.
    """
    events = _visible_events(request.events, request.groups, request.active_group_id)
    conflicts = conflicts_for_event(compute_visible_conflicts(events), request.focus_event_id)

    if not request.include_ignored:
        conflicts = filter_ignored_conflicts(conflicts, load_ignored(ignored_store, user_id))

    resolutions = await store.get_resolutions(user_id)

    logger.info(f"Detected {len(conflicts)} conflict(s) for user {user_id}")
    return build_detect_response(conflicts, resolutions)


@router.post(
    "/preflight",
    response_model=PreflightResponse,
    summary="Check a candidate event before saving",
)
async def preflight_event(
    request: PreflightRequest,
    user_id: str = Depends(get_user_id),
) -> PreflightResponse:
    """
    Simulate saving the candidate.

    `clear=true` means save directly; otherwise show the conflicts with
    `default_choice` preselected.
    """
    settings = get_settings()
    service = PreflightService(
        SnapshotEventSource(to_records(request.events)),
        SnapshotGroupSource(to_memberships(request.groups)),
        settings=settings,
    )
    candidate = EventCandidate(**request.candidate.model_dump())
    mode = GroupMode(group_id=request.active_group_id) if request.active_group_id else None

    try:
        result = await service.run(
            user_id,
            candidate,
            editing_event_id=request.editing_event_id,
            mode=mode,
        )
    except PreflightInputError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return build_preflight_response(
        result, default_preflight_choice(settings.conflict_default_resolution)
    )


@router.get(
    "/resolutions",
    response_model=ResolutionsResponse,
    summary="Get my conflict resolutions",
)
async def list_resolutions(
    user_id: str = Depends(get_user_id),
    store: ResolutionStore = Depends(get_resolution_store),
) -> ResolutionsResponse:
    resolutions = await store.get_resolutions(user_id)
    return ResolutionsResponse(resolutions={k: v.value for k, v in resolutions.items()})


@router.put(
    "/{conflict_id}/resolution",
    response_model=SetResolutionResponse,
    summary="Record a resolution for a conflict",
    responses={503: {"description": "Could not save; retry"}},
)
async def set_resolution(
    conflict_id: str,
    request: SetResolutionRequest,
    user_id: str = Depends(get_user_id),
    store: ResolutionStore = Depends(get_resolution_store),
) -> SetResolutionResponse:
    """Upsert the user's resolution; the latest write wins."""
    resolution = Resolution(request.resolution)
    await store.set_resolution(user_id, conflict_id, resolution)

    return SetResolutionResponse(
        conflict_id=conflict_id,
        resolution=resolution.value,
        message=resolution_hint(resolution),
    )


@router.delete(
    "/resolutions",
    response_model=ClearResolutionsResponse,
    summary="Clear my conflict resolutions",
)
async def clear_resolutions(
    user_id: str = Depends(get_user_id),
    store: ResolutionStore = Depends(get_resolution_store),
) -> ClearResolutionsResponse:
    cleared = await store.clear_resolutions(user_id)
    return ClearResolutionsResponse(cleared=cleared)


@router.post(
    "/ignored",
    response_model=IgnoreConflictsResponse,
    summary="Dismiss conflicts without a durable resolution",
)
async def ignore(
    request: IgnoreConflictsRequest,
    user_id: str = Depends(get_user_id),
    ignored_store: InMemoryIgnoredConflictStore = Depends(get_ignored_store),
) -> IgnoreConflictsResponse:
    """
    Add ids to the ignored set.

    Storage failure is reported as `stored=false`, never as an error.
    """
    stored = ignore_conflicts(ignored_store, user_id, request.conflict_ids)
    return IgnoreConflictsResponse(
        stored=stored,
        ignored_count=len(load_ignored(ignored_store, user_id)),
    )


@router.post(
    "/plan",
    response_model=PlanResponse,
    summary="Preview what applying my resolutions would do",
)
async def resolution_plan(
    request: PlanRequest,
    user_id: str = Depends(get_user_id),
    store: ResolutionStore = Depends(get_resolution_store),
) -> PlanResponse:
    """Counts and the event ids to delete; nothing is deleted here."""
    events = _visible_events(request.events, request.groups, request.active_group_id)
    conflicts = compute_visible_conflicts(events)
    resolutions = await store.get_resolutions(user_id)
    return build_plan_response(build_resolution_plan(conflicts, resolutions))
