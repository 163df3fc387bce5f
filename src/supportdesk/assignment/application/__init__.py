"""
Assignment Application Layer
============================

Application layer for ticket auto-assignment.

Contains:
- Services: AssignmentService
- Interfaces: IAssignmentRepository
- DTOs: Data transfer objects for API serialization
"""

from supportdesk.assignment.application.dto import (
    UpdateAssignmentConfigRequest,
    AssignmentResponse,
    WorkloadItem,
    WorkloadResponse,
    AssignmentStatsResponse,
)
from supportdesk.assignment.application.services import (
    IAssignmentRepository,
    AssignmentService,
)

__all__ = [
    # DTOs
    "UpdateAssignmentConfigRequest",
    "AssignmentResponse",
    "WorkloadItem",
    "WorkloadResponse",
    "AssignmentStatsResponse",
    # Services
    "AssignmentService",
    # Repository Interfaces
    "IAssignmentRepository",
]
