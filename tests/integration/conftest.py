"""
Integration fixtures: a file-backed SQLite database with the assignment tables.

pysqlite's own transaction handling is switched off so SAVEPOINTs work and
every transaction starts with BEGIN IMMEDIATE, which serializes concurrent
writers the way row locks do on PostgreSQL.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from supportdesk.assignment.infrastructure import (
    ASSIGNMENT_TABLES,
    TeamMemberModel,
    TicketModel,
)
from supportdesk.config import MemberStatus, TicketStatus
from supportdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
async def database(tmp_path):
    engine = init_database(f"sqlite+aiosqlite:///{tmp_path / 'assignment.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    await create_tables(ASSIGNMENT_TABLES)
    yield engine
    await close_database()


@pytest.fixture
def add_members(database):
    """Insert active members; earlier entries are more senior."""

    async def _add(organization_id, user_ids, status=MemberStatus.ACTIVE):
        async with get_session_context() as session:
            session.add_all([
                TeamMemberModel(
                    organization_id=organization_id,
                    user_id=user_id,
                    email=f"{user_id}@example.com",
                    status=status.value,
                    created_at=BASE_TIME + timedelta(days=i)
                )
                for i, user_id in enumerate(user_ids)
            ])

    return _add


@pytest.fixture
def add_tickets(database):
    """Insert tickets and return their ids."""

    async def _add(organization_id, count, assigned_to=None, status=TicketStatus.OPEN):
        tickets = [
            TicketModel(
                organization_id=organization_id,
                title=f"Ticket {i}",
                status=status.value,
                assigned_to=assigned_to
            )
            for i in range(count)
        ]
        async with get_session_context() as session:
            session.add_all(tickets)
        return [t.id for t in tickets]

    return _add
