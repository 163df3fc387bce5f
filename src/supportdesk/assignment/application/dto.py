"""
Assignment Application DTOs
===========================

Data Transfer Objects for the assignment API layer.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from supportdesk.assignment.domain import (
    AssignmentPreferences,
    AssignmentResult,
    AssignmentTracking,
    TeamMemberWorkload,
)


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either case on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Request DTOs ==========

class UpdateAssignmentConfigRequest(CamelModel):
    """Request model for assignment settings; omitted fields are left unchanged."""
    auto_assignment_enabled: Optional[bool] = None
    preferences: Optional[AssignmentPreferences] = None


# ========== Response DTOs ==========

class AssignmentResponse(CamelModel):
    """Response model for an auto-assignment attempt."""
    success: bool
    outcome: str
    assignee_id: Optional[str]
    assignment_method: str
    open_tickets_count: int
    error: Optional[str] = None

    @classmethod
    def from_domain(cls, result: AssignmentResult) -> "AssignmentResponse":
        return cls(
            success=result.is_assigned,
            outcome=result.outcome.value,
            assignee_id=result.assignee_id,
            assignment_method=result.method.value,
            open_tickets_count=result.open_tickets_count,
            error=result.error
        )


class WorkloadItem(CamelModel):
    user_id: str
    email: Optional[str]
    role: str
    open_tickets_count: int
    last_assigned_at: Optional[datetime]
    member_since: Optional[datetime]


class WorkloadResponse(CamelModel):
    """Response model for team workload."""
    workload: List[WorkloadItem]

    @classmethod
    def from_domain(cls, members: List[TeamMemberWorkload]) -> "WorkloadResponse":
        return cls(workload=[
            WorkloadItem(
                user_id=m.user_id,
                email=m.email,
                role=m.role,
                open_tickets_count=m.open_tickets_count,
                last_assigned_at=m.last_assigned_at,
                member_since=m.member_since
            )
            for m in members
        ])


class AssignmentStatsResponse(BaseModel):
    """Response model for assignment counters (raw tracking field names)."""
    organization_id: str
    is_auto_assignment_enabled: bool
    total_assignments: int = Field(ge=0)
    load_balancing_assignments: int = Field(ge=0)
    round_robin_fallback_assignments: int = Field(ge=0)
    last_assigned_user_id: Optional[str] = None
    last_assigned_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, tracking: AssignmentTracking) -> "AssignmentStatsResponse":
        return cls(
            organization_id=tracking.organization_id,
            is_auto_assignment_enabled=tracking.is_auto_assignment_enabled,
            total_assignments=tracking.total_assignments,
            load_balancing_assignments=tracking.load_balancing_assignments,
            round_robin_fallback_assignments=tracking.round_robin_fallback_assignments,
            last_assigned_user_id=tracking.last_assigned_user_id,
            last_assigned_at=tracking.last_assigned_at
        )
