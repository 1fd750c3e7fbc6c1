"""
Unit tests for conflict identity, attachment and resolution plans.
"""

import pytest

from src.services.conflicts import (
    Conflict,
    Resolution,
    attach_events,
    build_resolution_plan,
    compute_visible_conflicts,
    conflict_key,
    conflicts_for_event,
    filter_ignored_conflicts,
    format_range,
    resolution_for_conflict,
    resolution_hint,
    resolution_label,
    summarize_conflicts,
)

from tests.helpers import at


class TestConflictKey:
    """Test conflict_key()."""

    def test_order_independent(self):
        assert conflict_key("b", "a") == conflict_key("a", "b") == "cx::a::b"

    def test_ids_are_stringified(self):
        assert conflict_key(2, 10) == "cx::10::2"


class TestComputeVisibleConflicts:
    """Test compute_visible_conflicts()."""

    def test_no_events(self):
        assert compute_visible_conflicts([]) == []
        assert compute_visible_conflicts(None) == []

    def test_earlier_start_is_existing(self, make_event):
        conflicts = compute_visible_conflicts([make_event("z", 10, 12), make_event("a", 9, 11)])

        assert len(conflicts) == 1
        c = conflicts[0]
        assert c.id == "cx::a::z"
        assert c.existing_event_id == "a"
        assert c.incoming_event_id == "z"
        assert c.existing_event.id == "a"
        assert c.incoming_event.id == "z"
        assert c.kind == "overlap"

    def test_equal_starts_break_tie_by_id(self, make_event):
        conflicts = compute_visible_conflicts([make_event("b", 9, 10), make_event("a", 9, 11)])
        assert conflicts[0].existing_event_id == "a"

    def test_ids_stable_across_input_order(self, make_event):
        events = [make_event("a", 9, 11), make_event("b", 10, 12), make_event("c", 10, 13)]

        forward = [c.id for c in compute_visible_conflicts(events)]
        backward = [c.id for c in compute_visible_conflicts(list(reversed(events)))]

        assert forward == backward
        assert len(set(forward)) == 3

    def test_longest_overlap_first(self, make_event):
        events = [
            make_event("a", 9, 10),
            make_event("b", 9, 10, end_minute=15),  # 60 min with a
            make_event("c", 14, 16),
            make_event("d", 15, 16),  # 60 min with c
            make_event("e", 9, 9, start_minute=0, end_minute=30),
        ]

        conflicts = compute_visible_conflicts(events)

        durations = [c.overlap_minutes for c in conflicts]
        assert durations == sorted(durations, reverse=True)

    def test_touching_events_have_no_conflict(self, make_event):
        assert compute_visible_conflicts([make_event("a", 9, 10), make_event("b", 10, 11)]) == []


class TestAttachEvents:
    """Test attach_events()."""

    def test_missing_side_is_none(self, make_event):
        bare = Conflict(
            id="cx::a::gone",
            existing_event_id="a",
            incoming_event_id="gone",
            overlap_start=at(9),
            overlap_end=at(10),
        )
        other = Conflict(
            id="cx::b::c",
            existing_event_id="b",
            incoming_event_id="c",
            overlap_start=at(9),
            overlap_end=at(10),
        )
        events = [make_event("a", 9, 10), make_event("b", 9, 10), make_event("c", 9, 10)]

        attached = attach_events([bare, other], events)

        assert attached[0].existing_event.id == "a"
        assert attached[0].incoming_event is None
        assert attached[1].existing_event.id == "b"
        assert attached[1].incoming_event.id == "c"
        # Inputs are untouched
        assert bare.existing_event is None


class TestFiltering:
    """Test conflicts_for_event() and filter_ignored_conflicts()."""

    @pytest.fixture
    def conflicts(self, make_event):
        return compute_visible_conflicts(
            [make_event("a", 9, 11), make_event("b", 10, 12), make_event("c", 14, 15), make_event("d", 14, 16)]
        )

    def test_for_event(self, conflicts):
        assert [c.id for c in conflicts_for_event(conflicts, "b")] == ["cx::a::b"]
        assert len(conflicts_for_event(conflicts, None)) == 2

    def test_ignored_are_hidden(self, conflicts):
        visible = filter_ignored_conflicts(conflicts, {"cx::a::b"})
        assert [c.id for c in visible] == ["cx::c::d"]

    def test_other_side(self, conflicts):
        c = conflicts_for_event(conflicts, "a")[0]
        assert c.other_side("a") == "b"
        assert c.other_side("b") == "a"
        assert c.other_side("x") is None


class TestResolutionLookup:
    """Test resolution_for_conflict()."""

    @pytest.fixture
    def conflict(self, make_event):
        return compute_visible_conflicts([make_event("a", 9, 11), make_event("b", 10, 12)])[0]

    def test_exact_id(self, conflict):
        assert resolution_for_conflict(conflict, {"cx::a::b": Resolution.NONE}) == Resolution.NONE

    def test_legacy_prefixed_key(self, conflict):
        resolutions = {"cx::a::b::2026-03-01T10:00": Resolution.KEEP_EXISTING}
        assert resolution_for_conflict(conflict, resolutions) == Resolution.KEEP_EXISTING

    def test_unrelated_key_does_not_match(self, conflict):
        assert resolution_for_conflict(conflict, {"cx::a::bc": Resolution.NONE}) is None

    def test_no_decision(self, conflict):
        assert resolution_for_conflict(conflict, {}) is None


class TestResolutionPlan:
    """Test build_resolution_plan() and summarize_conflicts()."""

    def test_plan_counts_and_deletions(self, make_event):
        conflicts = compute_visible_conflicts(
            [
                make_event("a", 9, 11),
                make_event("b", 10, 12),
                make_event("c", 13, 15),
                make_event("d", 14, 16),
                make_event("e", 17, 19),
                make_event("f", 18, 20),
                make_event("g", 21, 22),
                make_event("h", 21, 23),
            ]
        )
        resolutions = {
            "cx::a::b": Resolution.KEEP_EXISTING,
            "cx::c::d": Resolution.REPLACE_WITH_NEW,
            "cx::e::f": Resolution.NONE,
        }

        plan = build_resolution_plan(conflicts, resolutions)

        assert plan.total == 4
        assert plan.decided == 3
        assert plan.pending == 1
        assert plan.skipped == 1
        assert sorted(plan.delete_ids) == ["b", "c"]
        assert plan.can_apply is True

    def test_nothing_decided(self, make_event):
        conflicts = compute_visible_conflicts([make_event("a", 9, 11), make_event("b", 10, 12)])

        plan = build_resolution_plan(conflicts, {})

        assert plan.pending == 1
        assert plan.delete_ids == []
        assert plan.can_apply is False

    def test_shared_event_deleted_once(self, make_event):
        conflicts = compute_visible_conflicts(
            [make_event("a", 9, 12), make_event("b", 10, 11), make_event("c", 11, 12)]
        )
        resolutions = {c.id: Resolution.KEEP_EXISTING for c in conflicts}

        plan = build_resolution_plan(conflicts, resolutions)

        assert len(plan.delete_ids) == len(set(plan.delete_ids))

    def test_summary(self, make_event):
        conflicts = compute_visible_conflicts(
            [make_event("a", 9, 11), make_event("b", 10, 12), make_event("c", 14, 15), make_event("d", 14, 16)]
        )

        summary = summarize_conflicts(conflicts, {"cx::c::d": Resolution.NONE})

        assert (summary.total, summary.decided, summary.pending) == (2, 1, 1)


class TestDisplayHelpers:
    """Test labels, hints and range formatting."""

    def test_labels(self):
        assert resolution_label(None) == "Pending"
        assert resolution_label(Resolution.KEEP_EXISTING) == "Keep A"
        assert resolution_label(Resolution.REPLACE_WITH_NEW) == "Keep B"
        assert resolution_label("none") == "Keep both"

    def test_hints(self):
        assert resolution_hint(None) == "You haven't decided yet"
        assert resolution_hint(Resolution.KEEP_EXISTING) == "Event B will be removed"

    def test_format_range_same_day(self):
        assert format_range(at(9), at(10, 30)) == "Sun 01 Mar · 09:00 - 10:30"

    def test_format_range_invalid(self):
        assert format_range(None, at(10)) == "Invalid date"
