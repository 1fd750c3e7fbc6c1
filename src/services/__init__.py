"""
Service layer for SyncPlans conflict handling.

Provides:
- Event normalization (group-type canonicalization, timestamp validation)
- Overlap detection and stable conflict identity
- Resolution persistence with optimistic writes
- The ignored-conflict set
- Preflight simulation before saving an event
"""

from src.services.normalizer import (
    normalize_group_type,
    group_label,
    parse_timestamp,
    normalize_events,
    filter_by_group_mode,
)

from src.services.overlaps import (
    OverlapPair,
    overlap_window,
    detect_overlaps,
)

from src.services.conflicts import (
    Conflict,
    ConflictSummary,
    Resolution,
    ResolutionPlan,
    conflict_key,
    build_conflicts,
    compute_visible_conflicts,
    attach_events,
    conflicts_for_event,
    filter_ignored_conflicts,
    resolution_for_conflict,
    summarize_conflicts,
    build_resolution_plan,
    resolution_label,
    resolution_hint,
    format_range,
)

from src.services.resolutions import (
    Notice,
    OptimisticWrite,
    ResolutionBoard,
    ResolutionStore,
    WriteState,
)

from src.services.ignored import (
    IgnoredConflictStore,
    InMemoryIgnoredConflictStore,
    ignore_conflicts,
    load_ignored,
)

from src.services.preflight import (
    PreflightChoice,
    PreflightResult,
    PreflightService,
    default_preflight_choice,
    preflight,
    run_preflight,
)

from src.services.exceptions import (
    ConflictEngineError,
    IgnoredStoreError,
    PreflightInputError,
    ResolutionStoreError,
)

__all__ = [
    # Normalizer
    "normalize_group_type",
    "group_label",
    "parse_timestamp",
    "normalize_events",
    "filter_by_group_mode",
    # Overlap detection
    "OverlapPair",
    "overlap_window",
    "detect_overlaps",
    # Conflict identity
    "Conflict",
    "ConflictSummary",
    "Resolution",
    "ResolutionPlan",
    "conflict_key",
    "build_conflicts",
    "compute_visible_conflicts",
    "attach_events",
    "conflicts_for_event",
    "filter_ignored_conflicts",
    "resolution_for_conflict",
    "summarize_conflicts",
    "build_resolution_plan",
    "resolution_label",
    "resolution_hint",
    "format_range",
    # Resolution store
    "Notice",
    "OptimisticWrite",
    "ResolutionBoard",
    "ResolutionStore",
    "WriteState",
    # Ignored set
    "IgnoredConflictStore",
    "InMemoryIgnoredConflictStore",
    "ignore_conflicts",
    "load_ignored",
    # Preflight
    "PreflightChoice",
    "PreflightResult",
    "PreflightService",
    "default_preflight_choice",
    "preflight",
    "run_preflight",
    # Errors
    "ConflictEngineError",
    "IgnoredStoreError",
    "PreflightInputError",
    "ResolutionStoreError",
]
