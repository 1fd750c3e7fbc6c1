"""
Event set normalizer.

Converts heterogeneous stored event records (personal or group scoped, with
drifting group-type vocabularies) into canonical CalendarEvent objects before
any conflict computation runs.

Group-type canonicalization happens here and only here.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from dateutil import tz
from dateutil.parser import isoparse

from src.config import get_settings
from src.integrations.base import CalendarEvent, GroupMembership, GroupMode, GroupType

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TITLE = "Event"

_GROUP_LABELS = {
    GroupType.PERSONAL: "Personal",
    GroupType.PAIR: "Pair",
    GroupType.FAMILY: "Family",
}


def normalize_group_type(raw_type: Any) -> GroupType:
    """
    Canonicalize a raw group type string.

    `family` maps to FAMILY; `personal` maps to PERSONAL; anything else
    (`pair`, the legacy `couple`, unset) maps to PAIR.

    Args:
        raw_type: Raw stored type (any case, may be None)

    Returns:
        Canonical group type
    """
    if isinstance(raw_type, GroupType):
        return raw_type

    value = str(raw_type or "").strip().lower()
    if value == "family":
        return GroupType.FAMILY
    if value == "personal":
        return GroupType.PERSONAL
    return GroupType.PAIR


def group_label(raw_type: Any) -> str:
    """Display label for a group type, after canonicalization."""
    if raw_type is None:
        return _GROUP_LABELS[GroupType.PERSONAL]
    return _GROUP_LABELS[normalize_group_type(raw_type)]


def build_group_type_lookup(groups: Iterable[GroupMembership]) -> dict[str, GroupType]:
    """
    Build a lookup from group id to canonical group type.

    Memberships of a group always describe a shared group, so only
    `family` and `pair` are produced here.
    """
    lookup: dict[str, GroupType] = {}
    for group in groups or []:
        if group is None or not group.id:
            continue
        group_type = normalize_group_type(group.type)
        if group_type == GroupType.PERSONAL:
            group_type = GroupType.PAIR
        lookup[str(group.id)] = group_type
    return lookup


def parse_timestamp(value: Any, default_tz: Optional[str] = None) -> Optional[datetime]:
    """
    Parse a stored timestamp into a timezone-aware datetime.

    Accepts datetime objects and ISO 8601 strings (`2026-03-01T10:00:00Z`,
    `2026-03-01 10:00`, `2026-03-01`). Naive values are localized to
    `default_tz` (settings timezone when not given).

    Args:
        value: Raw timestamp
        default_tz: IANA timezone for naive values

    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = isoparse(value.strip().replace(" ", "T", 1))
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        zone = tz.gettz(default_tz or get_settings().timezone) or tz.UTC
        parsed = parsed.replace(tzinfo=zone)
    return parsed


def normalize_event(
    record: Mapping[str, Any],
    group_types: Mapping[str, GroupType],
    default_tz: Optional[str] = None,
) -> Optional[CalendarEvent]:
    """
    Convert one raw record into a CalendarEvent.

    Returns None for records that cannot take part in time-based logic
    (missing id, unparsable or inverted times).
    """
    if not record:
        return None

    event_id = record.get("id")
    if event_id is None or str(event_id) == "":
        logger.debug("Dropping event record without id")
        return None

    start = parse_timestamp(record.get("start"), default_tz)
    end = parse_timestamp(record.get("end"), default_tz)
    if start is None or end is None:
        logger.debug(f"Dropping event {event_id}: unparsable start/end")
        return None
    if end <= start:
        logger.debug(f"Dropping event {event_id}: end is not after start")
        return None

    raw_group_id = record.get("group_id") or record.get("groupId")
    group_id = str(raw_group_id) if raw_group_id else None

    if group_id is None:
        group_type = GroupType.PERSONAL
    elif group_id in group_types:
        group_type = group_types[group_id]
    else:
        # Group not in the membership list: fall back to the record's own type
        group_type = normalize_group_type(record.get("group_type") or record.get("groupType"))
        if group_type == GroupType.PERSONAL:
            group_type = GroupType.PAIR

    notes = record.get("notes") or record.get("description")

    return CalendarEvent(
        id=str(event_id),
        title=record.get("title") or DEFAULT_EVENT_TITLE,
        start=start,
        end=end,
        group_id=group_id,
        group_type=group_type,
        notes=notes or None,
    )


def normalize_events(
    records: Optional[Sequence[Mapping[str, Any]]],
    groups: Optional[Iterable[GroupMembership]] = None,
    default_tz: Optional[str] = None,
) -> list[CalendarEvent]:
    """
    Normalize raw event records into canonical events.

    Malformed records are dropped silently; one bad record never blanks the
    whole set.

    Args:
        records: Raw event records from the event source
        groups: The user's group memberships
        default_tz: IANA timezone for naive timestamps

    Returns:
        List of canonical events, in input order
    """
    group_types = build_group_type_lookup(groups or [])

    events = []
    for record in records or []:
        if not isinstance(record, Mapping):
            continue
        event = normalize_event(record, group_types, default_tz)
        if event is not None:
            events.append(event)

    dropped = len(records or []) - len(events)
    if dropped:
        logger.info(f"Normalizer dropped {dropped} malformed event record(s)")

    return events


def filter_by_group_mode(
    events: Iterable[CalendarEvent],
    mode: Optional[GroupMode],
) -> list[CalendarEvent]:
    """
    Select the visible set for an active group.

    With no mode (or no group id) every event is visible. Otherwise the
    group's events are kept, plus personal ones unless excluded.
    """
    events = list(events or [])
    if mode is None or mode.group_id is None:
        return events

    return [
        e for e in events
        if e.group_id == mode.group_id or (mode.include_personal and e.group_id is None)
    ]
