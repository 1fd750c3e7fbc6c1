"""
Unit tests for response builder utilities.
"""

from src.api.models import EventRecord, GroupRecord
from src.api.response_builder import (
    build_plan_response,
    build_preflight_response,
    conflict_to_out,
    event_to_out,
    to_memberships,
    to_records,
)
from src.integrations.base import GroupType
from src.services.conflicts import Resolution, ResolutionPlan, compute_visible_conflicts
from src.services.preflight import PreflightChoice, PreflightResult


class TestConversions:
    """Test request model conversions."""

    def test_to_records(self):
        records = to_records([EventRecord(id="a", start="2026-03-01T09:00:00Z", end="x")])
        assert records[0]["id"] == "a"
        assert records[0]["group_id"] is None

    def test_to_memberships(self):
        memberships = to_memberships([GroupRecord(id="g1", type="family")])
        assert memberships[0].id == "g1"
        assert memberships[0].type == "family"


class TestConflictToOut:
    """Test conflict_to_out()."""

    def test_with_resolution(self, make_event):
        conflict = compute_visible_conflicts(
            [make_event("a", 9, 11), make_event("b", 10, 12, group_id="g1", group_type=GroupType.FAMILY)]
        )[0]

        out = conflict_to_out(conflict, {conflict.id: Resolution.NONE})

        assert out.resolution == "none"
        assert out.resolution_label == "Keep both"
        assert out.existing_event.group_label == "Personal"
        assert out.incoming_event.group_label == "Family"

    def test_event_to_out_none(self):
        assert event_to_out(None) is None


class TestPreflightAndPlanResponses:
    """Test build_preflight_response() and build_plan_response()."""

    def test_skipped_preflight(self):
        response = build_preflight_response(PreflightResult(skipped=True), PreflightChoice.KEEP_BOTH)

        assert response.clear is True
        assert response.skipped is True
        assert response.default_choice == "keep_both"

    def test_plan_response(self):
        plan = ResolutionPlan(total=2, decided=1, pending=1, delete_ids=["b"])

        response = build_plan_response(plan)

        assert response.can_apply is True
        assert response.delete_ids == ["b"]
