"""
Assignment Infrastructure Models
================================

SQLAlchemy ORM models for team members, tickets and assignment tracking.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from supportdesk.config import MemberStatus, TicketPriority, TicketStatus
from supportdesk.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TeamMemberModel(Base):
    """
    Database model for an organization's team member.

    ``last_assigned_at`` drives the round-robin tie-break.
    """
    __tablename__ = "team_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="member")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MemberStatus.ACTIVE.value
    )
    last_assigned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_team_members_org_user"),
        Index("ix_team_members_org_status", "organization_id", "status"),
    )


class TicketModel(Base):
    """
    Database model for a support ticket.

    Only the columns assignment reads or writes are mapped here.
    """
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=TicketStatus.OPEN.value
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TicketPriority.MEDIUM.value
    )
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class AssignmentTrackingModel(Base):
    """
    Database model for per-organization assignment tracking.

    One row per organization; counters are only ever incremented in SQL.
    """
    __tablename__ = "assignment_tracking"

    organization_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    is_auto_assignment_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    total_assignments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    load_balancing_assignments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    round_robin_fallback_assignments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_assigned_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    last_assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    assignment_preferences: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


ASSIGNMENT_TABLES = [
    TeamMemberModel.__table__,
    TicketModel.__table__,
    AssignmentTrackingModel.__table__,
]
