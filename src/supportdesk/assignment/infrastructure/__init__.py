"""
Assignment Infrastructure Layer
===============================

Infrastructure implementations for ticket auto-assignment.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
"""

from supportdesk.assignment.infrastructure.models import (
    TeamMemberModel,
    TicketModel,
    AssignmentTrackingModel,
    ASSIGNMENT_TABLES,
)
from supportdesk.assignment.infrastructure.repositories import SQLAlchemyAssignmentRepository

__all__ = [
    "TeamMemberModel",
    "TicketModel",
    "AssignmentTrackingModel",
    "ASSIGNMENT_TABLES",
    "SQLAlchemyAssignmentRepository",
]
