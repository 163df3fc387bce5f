"""
Assignment Domain Entities
==========================

Pure Python domain entities for ticket auto-assignment.

These entities carry the assignment decision and the per-organization
tracking counters; they are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from supportdesk.config import AssignmentMethod


class AssignmentOutcome(str, Enum):
    """How an auto-assignment attempt ended."""
    ASSIGNED = "assigned"
    DISABLED = "disabled"
    NO_CANDIDATES = "no_candidates"
    FAILED = "failed"


DISABLED_MESSAGE = "Auto-assignment is disabled for this organization"
MANUAL_MESSAGE = "Assignment method is manual for this organization"
NO_CANDIDATES_MESSAGE = "No active team members available for assignment"
SELECTION_FAILED_MESSAGE = "Failed to determine next assignee"
TICKET_UPDATE_FAILED_MESSAGE = "Failed to update ticket assignment"


@dataclass
class AssigneeCandidate:
    """
    An active team member considered for a new ticket.

    ``open_tickets_count`` counts tickets in an open-like status currently
    assigned to the member.
    """
    user_id: str
    open_tickets_count: int
    last_assigned_at: Optional[datetime] = None
    member_since: Optional[datetime] = None
    email: Optional[str] = None
    role: Optional[str] = None


@dataclass
class AssigneeSelection:
    """The chosen member and the rule that decided it."""
    candidate: AssigneeCandidate
    method: AssignmentMethod

    @property
    def user_id(self) -> str:
        return self.candidate.user_id

    @property
    def open_tickets_count(self) -> int:
        return self.candidate.open_tickets_count

    @property
    def previous_assigned_at(self) -> Optional[datetime]:
        return self.candidate.last_assigned_at


@dataclass
class AssignmentResult:
    """
    Result of one auto-assignment attempt.

    Soft outcomes (disabled, no candidates, failed ticket update) are
    reported here rather than raised.
    """
    outcome: AssignmentOutcome
    assignee_id: Optional[str] = None
    method: AssignmentMethod = AssignmentMethod.NONE
    open_tickets_count: int = 0
    error: Optional[str] = None

    @classmethod
    def assigned(cls, selection: AssigneeSelection) -> "AssignmentResult":
        return cls(
            outcome=AssignmentOutcome.ASSIGNED,
            assignee_id=selection.user_id,
            method=selection.method,
            open_tickets_count=selection.open_tickets_count
        )

    @classmethod
    def unassigned(cls, outcome: AssignmentOutcome, error: str) -> "AssignmentResult":
        return cls(outcome=outcome, error=error)

    @property
    def is_assigned(self) -> bool:
        return self.outcome == AssignmentOutcome.ASSIGNED

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the widget/dashboard wire shape."""
        data: Dict[str, Any] = {
            "assigneeId": self.assignee_id,
            "assignmentMethod": self.method.value,
            "openTicketsCount": self.open_tickets_count,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class AssignmentTracking:
    """
    Per-organization assignment counters and settings.

    Counters only grow; total_assignments equals the sum of the two
    per-method counters.
    """
    organization_id: str
    is_auto_assignment_enabled: bool = True
    total_assignments: int = 0
    load_balancing_assignments: int = 0
    round_robin_fallback_assignments: int = 0
    last_assigned_user_id: Optional[str] = None
    last_assigned_at: Optional[datetime] = None
    assignment_preferences: Dict[str, Any] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @classmethod
    def default_for(cls, organization_id: str) -> "AssignmentTracking":
        """Zeroed tracking for an organization that has none yet."""
        return cls(organization_id=organization_id)


@dataclass
class TeamMemberWorkload:
    """Dashboard view of one active member's load."""
    user_id: str
    email: Optional[str]
    role: str
    open_tickets_count: int
    last_assigned_at: Optional[datetime]
    member_since: Optional[datetime]
