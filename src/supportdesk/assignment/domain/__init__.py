"""
Assignment Domain Layer
=======================

Domain layer for ticket auto-assignment.

Contains:
- Entities: AssigneeCandidate, AssignmentResult, AssignmentTracking, TeamMemberWorkload
- Value Objects: AssigneeSelector, AssignmentPreferences, AssignmentConfig

This layer is framework-agnostic and contains pure business logic.
"""

from supportdesk.assignment.domain.entities import (
    AssignmentOutcome,
    AssigneeCandidate,
    AssigneeSelection,
    AssignmentResult,
    AssignmentTracking,
    TeamMemberWorkload,
    DISABLED_MESSAGE,
    MANUAL_MESSAGE,
    NO_CANDIDATES_MESSAGE,
    SELECTION_FAILED_MESSAGE,
    TICKET_UPDATE_FAILED_MESSAGE,
)
from supportdesk.assignment.domain.value_objects import (
    AssigneeSelector,
    AssignmentPreferences,
    AssignmentConfig,
)

__all__ = [
    # Entities
    "AssignmentOutcome",
    "AssigneeCandidate",
    "AssigneeSelection",
    "AssignmentResult",
    "AssignmentTracking",
    "TeamMemberWorkload",
    # Messages
    "DISABLED_MESSAGE",
    "MANUAL_MESSAGE",
    "NO_CANDIDATES_MESSAGE",
    "SELECTION_FAILED_MESSAGE",
    "TICKET_UPDATE_FAILED_MESSAGE",
    # Value Objects
    "AssigneeSelector",
    "AssignmentPreferences",
    "AssignmentConfig",
]
