"""
Preflight simulator.

Before a create/update is persisted, injects the candidate into the current
visible event set, reruns detection, and keeps only the conflicts that touch
the candidate. An empty result means the event can be saved directly.

A preflight is a warning, never a blocker: if the current events cannot be
fetched, it fails open.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Sequence

from src.config import Settings, get_settings
from src.integrations.base import (
    CalendarEvent,
    EventCandidate,
    EventSource,
    GroupMembership,
    GroupMode,
    GroupSource,
    GroupType,
)
from src.services.conflicts import Conflict, compute_visible_conflicts, conflict_key
from src.services.exceptions import PreflightInputError
from src.services.normalizer import (
    DEFAULT_EVENT_TITLE,
    build_group_type_lookup,
    filter_by_group_mode,
    normalize_events,
    normalize_group_type,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class PreflightChoice(str, Enum):
    """Options offered when a preflight finds conflicts."""

    EDIT = "edit"
    KEEP_EXISTING = "keep_existing"
    REPLACE_WITH_NEW = "replace_with_new"
    KEEP_BOTH = "keep_both"


def default_preflight_choice(preference: Optional[str]) -> PreflightChoice:
    """
    Map the user's default-resolution preference to the preselected option.

    `none` means keep both; `ask_me` and anything unknown send the user back
    to edit the event.
    """
    if preference == "keep_existing":
        return PreflightChoice.KEEP_EXISTING
    if preference == "replace_with_new":
        return PreflightChoice.REPLACE_WITH_NEW
    if preference == "none":
        return PreflightChoice.KEEP_BOTH
    return PreflightChoice.EDIT


@dataclass
class PreflightResult:
    """Outcome of a preflight run."""

    synthetic_id: Optional[str] = None
    conflicts: list[Conflict] = field(default_factory=list)
    skipped: bool = False
    failed_open: bool = False

    @property
    def is_clear(self) -> bool:
        """True when the event can be saved without asking."""
        return not self.conflicts

    @property
    def conflict_ids(self) -> list[str]:
        return [c.id for c in self.conflicts]

    @property
    def existing_ids_to_replace(self) -> list[str]:
        """Distinct existing event ids a `replace_with_new` choice removes."""
        return list(dict.fromkeys(c.existing_event_id for c in self.conflicts))

    def rekeyed_conflict_ids(self, saved_event_id: str) -> list[str]:
        """
        Conflict ids as they will be computed once the candidate is saved.

        The synthetic id never reaches storage, so suppressing "keep both"
        conflicts has to use the persisted event id.
        """
        return [conflict_key(saved_event_id, c.existing_event_id) for c in self.conflicts]


def make_synthetic_id(prefix: str, taken: Iterable[str] = ()) -> str:
    """Disposable id for the candidate, guaranteed not to be in `taken`."""
    taken = set(taken)
    while True:
        candidate_id = f"{prefix}{time.time_ns():x}_{uuid.uuid4().hex[:8]}"
        if candidate_id not in taken:
            return candidate_id


def build_candidate_event(
    candidate: EventCandidate,
    synthetic_id: str,
    groups: Optional[Sequence[GroupMembership]] = None,
    default_tz: Optional[str] = None,
) -> CalendarEvent:
    """
    Turn a not-yet-saved event into a canonical event.

    Raises:
        PreflightInputError: If start/end are missing, unparsable or inverted
    """
    if candidate is None:
        raise PreflightInputError("Preflight requires a candidate event")

    start = parse_timestamp(candidate.start, default_tz)
    end = parse_timestamp(candidate.end, default_tz)
    if start is None or end is None:
        raise PreflightInputError("Preflight requires valid start and end times")
    if end <= start:
        raise PreflightInputError("Preflight candidate must end after it starts")

    group_id = str(candidate.group_id) if candidate.group_id else None
    if group_id is None:
        group_type = GroupType.PERSONAL
    else:
        group_type = build_group_type_lookup(groups or []).get(
            group_id, normalize_group_type(candidate.group_type)
        )
        if group_type == GroupType.PERSONAL:
            group_type = GroupType.PAIR

    return CalendarEvent(
        id=synthetic_id,
        title=candidate.title or DEFAULT_EVENT_TITLE,
        start=start,
        end=end,
        group_id=group_id,
        group_type=group_type,
        notes=candidate.notes or None,
    )


def _orient(conflict: Conflict, incoming_id: str) -> Conflict:
    """Put the candidate on the incoming side."""
    if conflict.incoming_event_id == incoming_id:
        return conflict
    return replace(
        conflict,
        existing_event_id=conflict.incoming_event_id,
        incoming_event_id=conflict.existing_event_id,
        existing_event=conflict.incoming_event,
        incoming_event=conflict.existing_event,
    )


def run_preflight(
    candidate: EventCandidate,
    existing_events: Optional[Sequence[CalendarEvent]],
    editing_event_id: Optional[str] = None,
    groups: Optional[Sequence[GroupMembership]] = None,
    id_prefix: Optional[str] = None,
    default_tz: Optional[str] = None,
) -> PreflightResult:
    """
    Simulate saving `candidate` against the current events.

    Args:
        candidate: Event about to be created or updated
        existing_events: Current canonical visible set
        editing_event_id: Id of the event being edited, if any
        groups: Memberships, to resolve the candidate's group type
        id_prefix: Prefix for the synthetic id (settings default)
        default_tz: Timezone for naive candidate times

    Returns:
        PreflightResult whose conflicts all have the candidate as incoming
    """
    existing = [e for e in existing_events or [] if e is not None]
    prefix = id_prefix if id_prefix is not None else get_settings().preflight_id_prefix
    synthetic_id = make_synthetic_id(prefix, (e.id for e in existing))

    incoming = build_candidate_event(candidate, synthetic_id, groups, default_tz)
    combined = existing + [incoming]

    conflicts = []
    for c in compute_visible_conflicts(combined):
        if not c.involves(synthetic_id):
            continue
        c = _orient(c, synthetic_id)
        if editing_event_id is not None and c.existing_event_id == str(editing_event_id):
            continue
        conflicts.append(c)

    if conflicts:
        logger.info(f"Preflight found {len(conflicts)} conflict(s) for '{incoming.title}'")

    return PreflightResult(synthetic_id=synthetic_id, conflicts=conflicts)


def preflight(
    candidate: EventCandidate,
    existing_events: Optional[Sequence[CalendarEvent]],
    editing_event_id: Optional[str] = None,
) -> list[Conflict]:
    """
    Conflicts the candidate would introduce.

    An empty list means "safe to save directly".
    """
    return run_preflight(candidate, existing_events, editing_event_id).conflicts


class PreflightService:
    """
    Preflight wired to the event and group sources.

    Fetch failures fail open: the user is never blocked from saving because
    the warning could not be computed.
    """

    def __init__(
        self,
        event_source: EventSource,
        group_source: Optional[GroupSource] = None,
        settings: Optional[Settings] = None,
    ):
        self._events = event_source
        self._groups = group_source
        self._settings = settings or get_settings()

    async def run(
        self,
        user_id: str,
        candidate: EventCandidate,
        editing_event_id: Optional[str] = None,
        mode: Optional[GroupMode] = None,
    ) -> PreflightResult:
        """
        Run preflight for a user's candidate event.

        Args:
            user_id: The user saving the event
            candidate: Event about to be saved
            editing_event_id: Id of the event being edited, if any
            mode: Active group context (None = every visible event)

        Returns:
            PreflightResult (skipped when warnings are disabled)

        Raises:
            PreflightInputError: If the candidate has no usable times
        """
        if not self._settings.conflict_warn_before_save:
            return PreflightResult(skipped=True)

        # Misuse surfaces even when the fetch would have failed
        build_candidate_event(candidate, "validation", default_tz=self._settings.timezone)

        try:
            records = await self._events.list_events(user_id)
        except Exception as e:
            logger.warning(f"Preflight could not load events for user {user_id}, proceeding: {e}")
            return PreflightResult(failed_open=True)

        groups: Sequence[GroupMembership] = []
        if self._groups is not None:
            try:
                groups = await self._groups.list_groups(user_id)
            except Exception as e:
                logger.warning(f"Preflight could not load groups for user {user_id}: {e}")

        events = filter_by_group_mode(
            normalize_events(records, groups, self._settings.timezone),
            mode,
        )

        return run_preflight(
            candidate,
            events,
            editing_event_id=editing_event_id,
            groups=groups,
            id_prefix=self._settings.preflight_id_prefix,
            default_tz=self._settings.timezone,
        )
