"""
Assignment Value Objects
========================

Selection rules and configuration for auto-assignment.

Value objects are defined by their attributes rather than an identity.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from supportdesk.assignment.domain.entities import AssigneeCandidate, AssigneeSelection
from supportdesk.config import AssignmentMethod


def _instant(value: Optional[datetime]) -> float:
    return value.timestamp() if value is not None else float("-inf")


class AssigneeSelector:
    """
    Pure selection rules.

    Load balancing picks the member with the fewest open tickets. When
    several members share that minimum, round robin picks the one assigned
    longest ago, with never-assigned members first.
    """

    @staticmethod
    def round_robin_key(candidate: AssigneeCandidate) -> tuple:
        # Oldest (or missing) last assignment first, then seniority, then id
        return (
            candidate.last_assigned_at is not None,
            _instant(candidate.last_assigned_at),
            _instant(candidate.member_since),
            candidate.user_id
        )

    @classmethod
    def select(
        cls,
        candidates: Sequence[AssigneeCandidate],
        max_open_tickets: Optional[int] = None
    ) -> Optional[AssigneeSelection]:
        """
        Choose the next assignee.

        Args:
            candidates: Active members with their open-ticket counts
            max_open_tickets: Members at or above this load are skipped

        Returns:
            AssigneeSelection, or None when nobody is eligible
        """
        eligible = list(candidates)
        if max_open_tickets is not None:
            eligible = [c for c in eligible if c.open_tickets_count < max_open_tickets]

        if not eligible:
            return None

        fewest = min(c.open_tickets_count for c in eligible)
        tied = [c for c in eligible if c.open_tickets_count == fewest]

        if len(tied) == 1:
            return AssigneeSelection(candidate=tied[0], method=AssignmentMethod.LOAD_BALANCING)

        winner = min(tied, key=cls.round_robin_key)
        return AssigneeSelection(candidate=winner, method=AssignmentMethod.ROUND_ROBIN)


class AssignmentPreferences(BaseModel):
    """
    Assignment preferences stored with the organization's tracking row.

    ``consider_availability`` and ``assignment_timeout`` are kept for the
    dashboard; selection uses ``primary_method`` and ``max_tickets_per_member``.
    """
    primary_method: AssignmentMethod = Field(
        default=AssignmentMethod.LOAD_BALANCING,
        description="load_balancing, round_robin or manual"
    )
    fallback_method: AssignmentMethod = Field(
        default=AssignmentMethod.ROUND_ROBIN,
        description="Tie-break rule"
    )
    consider_availability: bool = Field(default=False)
    max_tickets_per_member: Optional[int] = Field(default=None, ge=1)
    assignment_timeout: int = Field(default=5, ge=1, description="Minutes")

    @field_validator("primary_method")
    @classmethod
    def validate_primary_method(cls, v: AssignmentMethod) -> AssignmentMethod:
        if v == AssignmentMethod.NONE:
            raise ValueError("primary_method cannot be 'none'")
        return v

    @classmethod
    def from_stored(cls, data: Optional[Dict[str, Any]]) -> "AssignmentPreferences":
        """Build from the stored blob, ignoring unknown keys."""
        known = {k: v for k, v in (data or {}).items() if k in cls.model_fields and v is not None}
        return cls(**known)

    @property
    def is_manual(self) -> bool:
        return self.primary_method == AssignmentMethod.MANUAL


class AssignmentConfig(BaseModel):
    """Effective assignment configuration of an organization."""
    organization_id: str
    auto_assignment_enabled: bool = True
    preferences: AssignmentPreferences = Field(default_factory=AssignmentPreferences)
