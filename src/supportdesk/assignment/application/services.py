"""
Assignment Application Services
===============================

Application services orchestrate auto-assignment and coordinate between
domain rules and the team/ticket store.

Following SOLID principles:
- Single Responsibility: AssignmentService owns the assignment workflow
- Dependency Inversion: Depend on IAssignmentRepository, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supportdesk.assignment.domain import (
    DISABLED_MESSAGE,
    MANUAL_MESSAGE,
    NO_CANDIDATES_MESSAGE,
    SELECTION_FAILED_MESSAGE,
    TICKET_UPDATE_FAILED_MESSAGE,
    AssigneeSelection,
    AssignmentConfig,
    AssignmentOutcome,
    AssignmentPreferences,
    AssignmentResult,
    AssignmentTracking,
    TeamMemberWorkload,
)
from supportdesk.config import AssignmentMethod
from supportdesk.core import RepositoryException, ResourceNotFoundException, TrackingUpdateFailed
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAssignmentRepository(ABC):
    """Interface for the team roster, tickets and assignment tracking."""

    @abstractmethod
    async def get_or_create_tracking(self, organization_id: str) -> AssignmentTracking:
        """Tracking row of the organization, created enabled if missing."""

    @abstractmethod
    async def get_tracking(self, organization_id: str) -> Optional[AssignmentTracking]:
        """Tracking row of the organization without creating it."""

    @abstractmethod
    async def select_next_assignee(
        self,
        organization_id: str,
        max_open_tickets: Optional[int] = None
    ) -> Optional[AssigneeSelection]:
        """
        Pick the next assignee atomically.

        Candidate read, open-ticket counting and selection happen while the
        organization's tracking row is locked.
        """

    @abstractmethod
    async def set_ticket_assignee(
        self,
        organization_id: str,
        ticket_id: str,
        user_id: str,
        assigned_at: datetime
    ) -> None:
        """Write the assignee onto the ticket and stamp the member."""

    @abstractmethod
    async def increment_assignment_counters(
        self,
        organization_id: str,
        user_id: str,
        method: AssignmentMethod,
        assigned_at: datetime
    ) -> None:
        """
        Atomically bump the organization's counters.

        Raises:
            TrackingUpdateFailed: If the statistics could not be written
        """

    @abstractmethod
    async def list_workload(self, organization_id: str) -> List[TeamMemberWorkload]:
        """Active members with live open-ticket counts."""

    @abstractmethod
    async def upsert_tracking(
        self,
        organization_id: str,
        fields: Dict[str, Any]
    ) -> AssignmentTracking:
        """Create or update the tracking row with the given fields."""


# ========== Application Services ==========

class AssignmentService:
    """
    Service for ticket auto-assignment, workload and assignment settings.
    """

    def __init__(self, repository: IAssignmentRepository):
        self._repo = repository

    async def auto_assign_ticket(self, organization_id: str, ticket_id: str) -> AssignmentResult:
        """
        Assign a new ticket to the next team member.

        Args:
            organization_id: Owning organization
            ticket_id: Ticket to assign

        Returns:
            AssignmentResult; disabled, no-candidate and failed outcomes are
            returned, not raised
        """
        log_context = {"organization_id": organization_id, "ticket_id": ticket_id}

        tracking = await self._repo.get_or_create_tracking(organization_id)
        if not tracking.is_auto_assignment_enabled:
            logger.info("Auto-assignment disabled", extra=log_context)
            return AssignmentResult.unassigned(AssignmentOutcome.DISABLED, DISABLED_MESSAGE)

        preferences = AssignmentPreferences.from_stored(tracking.assignment_preferences)
        if preferences.is_manual:
            logger.info("Assignment method is manual", extra=log_context)
            return AssignmentResult.unassigned(AssignmentOutcome.DISABLED, MANUAL_MESSAGE)

        try:
            selection = await self._repo.select_next_assignee(
                organization_id,
                max_open_tickets=preferences.max_tickets_per_member
            )
        except RepositoryException as e:
            logger.error(
                "Failed to determine next assignee",
                extra={**log_context, "error": e.message}
            )
            return AssignmentResult.unassigned(AssignmentOutcome.FAILED, SELECTION_FAILED_MESSAGE)

        if selection is None:
            logger.info("No active team members available", extra=log_context)
            return AssignmentResult.unassigned(
                AssignmentOutcome.NO_CANDIDATES, NO_CANDIDATES_MESSAGE
            )

        logger.info(
            "Assignment decision",
            extra={
                **log_context,
                "assignee_id": selection.user_id,
                "method": selection.method.value,
                "open_tickets_count": selection.open_tickets_count,
                "previous_assigned_at": (
                    selection.previous_assigned_at.isoformat()
                    if selection.previous_assigned_at else None
                )
            }
        )

        assigned_at = datetime.now(timezone.utc)
        try:
            await self._repo.set_ticket_assignee(
                organization_id, ticket_id, selection.user_id, assigned_at
            )
        except (RepositoryException, ResourceNotFoundException) as e:
            logger.error(
                "Failed to update ticket assignment",
                extra={**log_context, "error": e.message}
            )
            return AssignmentResult.unassigned(
                AssignmentOutcome.FAILED, TICKET_UPDATE_FAILED_MESSAGE
            )

        try:
            await self._repo.increment_assignment_counters(
                organization_id, selection.user_id, selection.method, assigned_at
            )
        except TrackingUpdateFailed as e:
            # Statistics are best-effort; the ticket stays assigned
            logger.warning(
                "Failed to update assignment tracking",
                extra={**log_context, "error": e.message}
            )

        return AssignmentResult.assigned(selection)

    async def get_team_member_workload(self, organization_id: str) -> List[TeamMemberWorkload]:
        return await self._repo.list_workload(organization_id)

    async def get_assignment_stats(self, organization_id: str) -> AssignmentTracking:
        """Tracking counters, or zeroed defaults when none exist yet."""
        tracking = await self._repo.get_tracking(organization_id)
        return tracking or AssignmentTracking.default_for(organization_id)

    async def get_assignment_config(self, organization_id: str) -> AssignmentConfig:
        tracking = await self.get_assignment_stats(organization_id)
        return AssignmentConfig(
            organization_id=organization_id,
            auto_assignment_enabled=tracking.is_auto_assignment_enabled,
            preferences=AssignmentPreferences.from_stored(tracking.assignment_preferences)
        )

    async def update_assignment_config(
        self,
        organization_id: str,
        auto_assignment_enabled: Optional[bool] = None,
        preferences: Optional[AssignmentPreferences] = None
    ) -> AssignmentConfig:
        """
        Upsert the enabled flag and/or preferences. Applying the same update
        twice leaves the same state.
        """
        fields: Dict[str, Any] = {}
        if auto_assignment_enabled is not None:
            fields["is_auto_assignment_enabled"] = auto_assignment_enabled
        if preferences is not None:
            fields["assignment_preferences"] = preferences.model_dump(mode="json")

        tracking = await self._repo.upsert_tracking(organization_id, fields)

        logger.info(
            "Assignment config updated",
            extra={
                "organization_id": organization_id,
                "auto_assignment_enabled": tracking.is_auto_assignment_enabled,
                "fields": sorted(fields)
            }
        )

        return AssignmentConfig(
            organization_id=organization_id,
            auto_assignment_enabled=tracking.is_auto_assignment_enabled,
            preferences=AssignmentPreferences.from_stored(tracking.assignment_preferences)
        )
