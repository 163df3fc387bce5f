"""
Unit tests for assignee selection rules and assignment preferences.
"""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from supportdesk.assignment.domain import (
    AssigneeCandidate,
    AssigneeSelector,
    AssignmentOutcome,
    AssignmentPreferences,
    AssignmentResult,
    AssigneeSelection,
)
from supportdesk.config import AssignmentMethod

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def member(user_id, open_tickets, last_assigned=None, joined_days_ago=30):
    return AssigneeCandidate(
        user_id=user_id,
        open_tickets_count=open_tickets,
        last_assigned_at=last_assigned,
        member_since=NOW - timedelta(days=joined_days_ago)
    )


class TestAssigneeSelector:
    """Tests for load balancing with round-robin tie-break."""

    def test_fewest_open_tickets_wins(self):
        selection = AssigneeSelector.select([
            member("alice", 3),
            member("bob", 1),
            member("carol", 2),
        ])

        assert selection.user_id == "bob"
        assert selection.method == AssignmentMethod.LOAD_BALANCING
        assert selection.open_tickets_count == 1

    def test_tie_goes_to_longest_unassigned(self):
        selection = AssigneeSelector.select([
            member("alice", 1, last_assigned=NOW - timedelta(hours=1)),
            member("bob", 1, last_assigned=NOW - timedelta(hours=5)),
            member("carol", 4, last_assigned=NOW - timedelta(days=9)),
        ])

        assert selection.user_id == "bob"
        assert selection.method == AssignmentMethod.ROUND_ROBIN

    def test_never_assigned_member_wins_tie(self):
        selection = AssigneeSelector.select([
            member("alice", 0, last_assigned=NOW - timedelta(days=100)),
            member("bob", 0, last_assigned=None),
        ])

        assert selection.user_id == "bob"
        assert selection.method == AssignmentMethod.ROUND_ROBIN

    def test_seniority_breaks_remaining_tie(self):
        selection = AssigneeSelector.select([
            member("newer", 0, joined_days_ago=1),
            member("older", 0, joined_days_ago=90),
        ])

        assert selection.user_id == "older"

    def test_user_id_is_last_tie_break(self):
        candidates = [member("b-user", 0), member("a-user", 0)]

        assert AssigneeSelector.select(candidates).user_id == "a-user"
        assert AssigneeSelector.select(list(reversed(candidates))).user_id == "a-user"

    def test_most_loaded_member_is_never_chosen(self):
        selection = AssigneeSelector.select([
            member("busy", 5),
            member("b", 2, last_assigned=NOW),
            member("c", 2),
        ])

        assert selection.user_id != "busy"

    def test_tie_between_yesterday_and_today(self):
        selection = AssigneeSelector.select([
            member("A", 3, last_assigned=NOW - timedelta(hours=2)),
            member("B", 1, last_assigned=NOW - timedelta(days=1)),
            member("C", 1, last_assigned=NOW),
        ])

        assert selection.user_id == "B"
        assert selection.method == AssignmentMethod.ROUND_ROBIN

    def test_no_candidates(self):
        assert AssigneeSelector.select([]) is None

    def test_members_at_capacity_are_skipped(self):
        selection = AssigneeSelector.select(
            [member("alice", 2), member("bob", 5)],
            max_open_tickets=3
        )

        assert selection.user_id == "alice"
        assert selection.method == AssignmentMethod.LOAD_BALANCING

    def test_everyone_at_capacity(self):
        assert AssigneeSelector.select([member("alice", 3)], max_open_tickets=3) is None

    def test_selected_member_has_minimum_load(self):
        candidates = [member(f"user-{i}", (i * 7) % 5) for i in range(10)]

        selection = AssigneeSelector.select(candidates)

        assert selection.open_tickets_count == min(c.open_tickets_count for c in candidates)


class TestAssignmentPreferences:

    def test_defaults(self):
        prefs = AssignmentPreferences()

        assert prefs.primary_method == AssignmentMethod.LOAD_BALANCING
        assert prefs.fallback_method == AssignmentMethod.ROUND_ROBIN
        assert prefs.max_tickets_per_member is None
        assert prefs.is_manual is False

    def test_from_stored_ignores_unknown_keys(self):
        prefs = AssignmentPreferences.from_stored({
            "primary_method": "manual",
            "legacy_weighting": 3,
            "max_tickets_per_member": None,
        })

        assert prefs.is_manual is True
        assert prefs.max_tickets_per_member is None

    def test_from_stored_empty(self):
        assert AssignmentPreferences.from_stored(None) == AssignmentPreferences()

    def test_none_is_not_a_primary_method(self):
        with pytest.raises(ValidationError):
            AssignmentPreferences(primary_method=AssignmentMethod.NONE)

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            AssignmentPreferences(max_tickets_per_member=0)


class TestAssignmentResult:

    def test_assigned_wire_shape(self):
        selection = AssigneeSelection(member("alice", 2), AssignmentMethod.ROUND_ROBIN)

        assert AssignmentResult.assigned(selection).to_dict() == {
            "assigneeId": "alice",
            "assignmentMethod": "round_robin",
            "openTicketsCount": 2,
        }

    def test_unassigned_wire_shape(self):
        result = AssignmentResult.unassigned(AssignmentOutcome.DISABLED, "disabled")

        assert result.is_assigned is False
        assert result.to_dict() == {
            "assigneeId": None,
            "assignmentMethod": "none",
            "openTicketsCount": 0,
            "error": "disabled",
        }
