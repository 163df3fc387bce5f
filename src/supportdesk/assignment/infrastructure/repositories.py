"""
Assignment Infrastructure Repositories
======================================

SQLAlchemy implementation of the team/ticket store.

Concurrent assignments for one organization are serialized on its
assignment_tracking row (SELECT ... FOR UPDATE), so candidate read, count
comparison and selection see a consistent roster.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.assignment.application import IAssignmentRepository
from supportdesk.assignment.domain import (
    AssigneeCandidate,
    AssigneeSelection,
    AssigneeSelector,
    AssignmentTracking,
    TeamMemberWorkload,
)
from supportdesk.config import (
    AUTOMATIC_METHODS,
    OPEN_TICKET_STATUSES,
    AssignmentMethod,
    MemberStatus,
)
from supportdesk.core import (
    DomainException,
    RepositoryException,
    ResourceNotFoundException,
    TrackingUpdateFailed,
)


class SQLAlchemyAssignmentRepository(IAssignmentRepository):
    """SQLAlchemy implementation for assignment data access."""

    def __init__(self, session: AsyncSession):
        self._session = session

    # ---------- tracking ----------

    def _insert(self):
        """Dialect insert construct supporting ON CONFLICT."""
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise RepositoryException(f"Unsupported database dialect: {dialect}")
        return insert

    async def _ensure_tracking_row(self, organization_id: str) -> None:
        from supportdesk.assignment.infrastructure.models import AssignmentTrackingModel

        insert = self._insert()
        stmt = insert(AssignmentTrackingModel).values(
            organization_id=organization_id,
            is_auto_assignment_enabled=True,
            total_assignments=0,
            load_balancing_assignments=0,
            round_robin_fallback_assignments=0,
            assignment_preferences={},
            created_at=datetime.now(timezone.utc)
        ).on_conflict_do_nothing(index_elements=["organization_id"])
        await self._session.execute(stmt)

    async def _load_tracking(self, organization_id: str, for_update: bool = False):
        from supportdesk.assignment.infrastructure.models import AssignmentTrackingModel

        stmt = (
            select(AssignmentTrackingModel)
            .where(AssignmentTrackingModel.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_tracking(self, organization_id: str) -> AssignmentTracking:
        model = await self._load_tracking(organization_id, for_update=True)
        if model is None:
            await self._ensure_tracking_row(organization_id)
            model = await self._load_tracking(organization_id, for_update=True)
        return self._to_tracking(model)

    async def get_tracking(self, organization_id: str) -> Optional[AssignmentTracking]:
        model = await self._load_tracking(organization_id)
        return self._to_tracking(model) if model is not None else None

    async def upsert_tracking(
        self,
        organization_id: str,
        fields: Dict[str, Any]
    ) -> AssignmentTracking:
        await self._ensure_tracking_row(organization_id)

        if fields:
            from supportdesk.assignment.infrastructure.models import AssignmentTrackingModel

            stmt = (
                update(AssignmentTrackingModel)
                .where(AssignmentTrackingModel.organization_id == organization_id)
                .values(**fields, updated_at=datetime.now(timezone.utc))
            )
            await self._session.execute(stmt)

        await self._session.flush()
        return self._to_tracking(await self._load_tracking(organization_id))

    async def increment_assignment_counters(
        self,
        organization_id: str,
        user_id: str,
        method: AssignmentMethod,
        assigned_at: datetime
    ) -> None:
        """
        Single UPDATE with in-SQL increments, inside a SAVEPOINT so a failure
        rolls back only the statistics.
        """
        from supportdesk.assignment.infrastructure.models import AssignmentTrackingModel as T

        if method not in AUTOMATIC_METHODS:
            raise DomainException(f"Cannot record counters for method '{method.value}'")

        method_column = (
            T.load_balancing_assignments
            if method == AssignmentMethod.LOAD_BALANCING
            else T.round_robin_fallback_assignments
        )
        stmt = (
            update(T)
            .where(T.organization_id == organization_id)
            .values({
                T.total_assignments: T.total_assignments + 1,
                method_column: method_column + 1,
                T.last_assigned_user_id: user_id,
                T.last_assigned_at: assigned_at,
                T.updated_at: assigned_at,
            })
        )

        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
                if result.rowcount == 0:
                    raise TrackingUpdateFailed(
                        f"No assignment tracking for organization {organization_id}"
                    )
        except SQLAlchemyError as e:
            raise TrackingUpdateFailed(f"Failed to update assignment tracking: {e}") from e

    # ---------- roster ----------

    def _candidates_statement(self, organization_id: str):
        from supportdesk.assignment.infrastructure.models import TeamMemberModel, TicketModel

        open_counts = (
            select(
                TicketModel.assigned_to.label("user_id"),
                func.count(TicketModel.id).label("open_count")
            )
            .where(TicketModel.organization_id == organization_id)
            .where(TicketModel.status.in_([s.value for s in OPEN_TICKET_STATUSES]))
            .where(TicketModel.assigned_to.is_not(None))
            .group_by(TicketModel.assigned_to)
            .subquery()
        )

        return (
            select(TeamMemberModel, func.coalesce(open_counts.c.open_count, 0))
            .outerjoin(open_counts, open_counts.c.user_id == TeamMemberModel.user_id)
            .where(TeamMemberModel.organization_id == organization_id)
            .where(TeamMemberModel.status == MemberStatus.ACTIVE.value)
            .order_by(TeamMemberModel.created_at)
            .execution_options(populate_existing=True)
        )

    async def select_next_assignee(
        self,
        organization_id: str,
        max_open_tickets: Optional[int] = None
    ) -> Optional[AssigneeSelection]:
        try:
            if await self._load_tracking(organization_id, for_update=True) is None:
                await self._ensure_tracking_row(organization_id)
                await self._load_tracking(organization_id, for_update=True)

            result = await self._session.execute(self._candidates_statement(organization_id))
            rows = result.all()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load assignment candidates: {e}") from e

        candidates = [
            AssigneeCandidate(
                user_id=member.user_id,
                open_tickets_count=int(open_count),
                last_assigned_at=member.last_assigned_at,
                member_since=member.created_at,
                email=member.email,
                role=member.role
            )
            for member, open_count in rows
        ]
        return AssigneeSelector.select(candidates, max_open_tickets=max_open_tickets)

    async def set_ticket_assignee(
        self,
        organization_id: str,
        ticket_id: str,
        user_id: str,
        assigned_at: datetime
    ) -> None:
        from supportdesk.assignment.infrastructure.models import TeamMemberModel, TicketModel

        try:
            result = await self._session.execute(
                update(TicketModel)
                .where(TicketModel.id == ticket_id)
                .where(TicketModel.organization_id == organization_id)
                .values(assigned_to=user_id, assigned_at=assigned_at, updated_at=assigned_at)
            )
            if result.rowcount == 0:
                raise ResourceNotFoundException("Ticket", ticket_id)

            await self._session.execute(
                update(TeamMemberModel)
                .where(TeamMemberModel.organization_id == organization_id)
                .where(TeamMemberModel.user_id == user_id)
                .values(last_assigned_at=assigned_at)
            )
            await self._session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to assign ticket {ticket_id}: {e}") from e

    async def list_workload(self, organization_id: str) -> List[TeamMemberWorkload]:
        result = await self._session.execute(self._candidates_statement(organization_id))
        return [
            TeamMemberWorkload(
                user_id=member.user_id,
                email=member.email,
                role=member.role,
                open_tickets_count=int(open_count),
                last_assigned_at=member.last_assigned_at,
                member_since=member.created_at
            )
            for member, open_count in result.all()
        ]

    @staticmethod
    def _to_tracking(model) -> AssignmentTracking:
        return AssignmentTracking(
            organization_id=model.organization_id,
            is_auto_assignment_enabled=model.is_auto_assignment_enabled,
            total_assignments=model.total_assignments,
            load_balancing_assignments=model.load_balancing_assignments,
            round_robin_fallback_assignments=model.round_robin_fallback_assignments,
            last_assigned_user_id=model.last_assigned_user_id,
            last_assigned_at=model.last_assigned_at,
            assignment_preferences=dict(model.assignment_preferences or {}),
            updated_at=model.updated_at
        )
