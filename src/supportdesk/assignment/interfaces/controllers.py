"""
Assignment Controllers (API Routes)
===================================

FastAPI routes for ticket auto-assignment, team workload and assignment
settings.

Controllers delegate to application services. Authorization is handled by
the upstream identity layer.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.assignment.application import (
    AssignmentResponse,
    AssignmentService,
    AssignmentStatsResponse,
    UpdateAssignmentConfigRequest,
    WorkloadResponse,
)
from supportdesk.assignment.domain import AssignmentConfig
from supportdesk.assignment.infrastructure import SQLAlchemyAssignmentRepository
from supportdesk.infrastructure.database import get_session
from supportdesk.shared.infrastructure.grafana import get_grafana_exporter
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/assignment", tags=["Ticket Assignment"])


AUTO_ASSIGN_RESPONSE_EXAMPLE = {
    "success": True,
    "outcome": "assigned",
    "assigneeId": "7d0c2b7e-3a51-4a8e-9a0e-1f4f5a3c2b10",
    "assignmentMethod": "round_robin",
    "openTicketsCount": 1,
    "error": None
}


# ========== Dependencies ==========

def get_assignment_service(
    db: AsyncSession = Depends(get_session, scope="function")
) -> AssignmentService:
    return AssignmentService(SQLAlchemyAssignmentRepository(db))


# ========== Route Handlers ==========

@router.post(
    "/{organization_id}/tickets/{ticket_id}/auto-assign",
    response_model=AssignmentResponse,
    response_model_by_alias=True,
    summary="Auto-assign a ticket",
    description="""
    Assign a ticket to the active team member with the fewest open tickets.

    Ties are broken round-robin: the member assigned longest ago (or never)
    wins and the method is reported as `round_robin`.

    Disabled auto-assignment, an empty roster and a failed ticket update are
    reported in the body (`success: false`) rather than as HTTP errors.
    """,
    responses={
        200: {
            "description": "Assignment attempted",
            "content": {"application/json": {"example": AUTO_ASSIGN_RESPONSE_EXAMPLE}}
        }
    }
)
async def auto_assign_ticket(
    request: Request,
    organization_id: str,
    ticket_id: str,
    background_tasks: BackgroundTasks,
    service: AssignmentService = Depends(get_assignment_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    result = await service.auto_assign_ticket(organization_id, ticket_id)

    logger.info(
        "Auto-assignment finished",
        extra={
            "correlation_id": correlation_id,
            "organization_id": organization_id,
            "ticket_id": ticket_id,
            "outcome": result.outcome.value,
            "assignee_id": result.assignee_id,
            "method": result.method.value
        }
    )

    # Runs after the session has committed and released the tracking row lock
    if result.is_assigned:
        exporter = get_grafana_exporter()
        if exporter and exporter.is_enabled():
            background_tasks.add_task(
                exporter.export_assignment_metrics,
                organization_id=organization_id,
                method=result.method.value,
                open_tickets_count=result.open_tickets_count
            )

    return AssignmentResponse.from_domain(result)


@router.get(
    "/{organization_id}/workload",
    response_model=WorkloadResponse,
    response_model_by_alias=True,
    summary="Get team workload",
    description="Active team members with their live open-ticket counts and last assignment time."
)
async def get_workload(
    organization_id: str,
    service: AssignmentService = Depends(get_assignment_service)
):
    members = await service.get_team_member_workload(organization_id)
    return WorkloadResponse.from_domain(members)


@router.get(
    "/{organization_id}/stats",
    response_model=AssignmentStatsResponse,
    summary="Get assignment statistics",
    description="Assignment counters for the organization; zeros when nothing has been assigned yet."
)
async def get_stats(
    organization_id: str,
    service: AssignmentService = Depends(get_assignment_service)
):
    tracking = await service.get_assignment_stats(organization_id)
    return AssignmentStatsResponse.from_domain(tracking)


@router.get(
    "/{organization_id}/config",
    response_model=AssignmentConfig,
    summary="Get assignment settings"
)
async def get_config(
    organization_id: str,
    service: AssignmentService = Depends(get_assignment_service)
):
    return await service.get_assignment_config(organization_id)


@router.put(
    "/{organization_id}/config",
    response_model=AssignmentConfig,
    summary="Update assignment settings",
    description="Upsert the auto-assignment flag and/or preferences. Idempotent."
)
async def update_config(
    request: Request,
    organization_id: str,
    payload: UpdateAssignmentConfigRequest,
    service: AssignmentService = Depends(get_assignment_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        "Updating assignment config",
        extra={"correlation_id": correlation_id, "organization_id": organization_id}
    )

    return await service.update_assignment_config(
        organization_id,
        auto_assignment_enabled=payload.auto_assignment_enabled,
        preferences=payload.preferences
    )


# Export router for inclusion in main app
assignment_router = router
