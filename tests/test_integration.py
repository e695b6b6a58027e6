"""Round trips against a real PostgreSQL database.

Every test here is skipped when PostgreSQL cannot be reached.  Point
``TEST_PG_*`` at a disposable server; tables are created and dropped
around each test.
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock
from uuid import uuid4

import asyncpg
import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.background import BackgroundJobRunner
from app.models import (
    Agent,
    AgentLead,
    Booking,
    Commission,
    Lead,
    LeadInteraction,
    MarketingWorkflow,
    User,
    WorkflowEnrollment,
    WorkflowLog,
)
from app.models.base import Base
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.workflow_repository import EnrollmentRepository
from app.services import jobs
from app.services.workflow_engine import WorkflowEngine

pytestmark = pytest.mark.integration

_PG_HOST = os.getenv("TEST_PG_HOST", "localhost")
_PG_PORT = int(os.getenv("TEST_PG_PORT", "5432"))
_PG_USER = os.getenv("TEST_PG_USER", "postgres")
_PG_PASS = os.getenv("TEST_PG_PASSWORD", "postgres")
_TEST_DB = "lead_engine_test_db"

_TEST_DB_URL = (
    f"postgresql+asyncpg://{_PG_USER}:{_PG_PASS}@{_PG_HOST}:{_PG_PORT}/{_TEST_DB}"
)


async def _ensure_database() -> None:
    conn = await asyncpg.connect(
        user=_PG_USER,
        password=_PG_PASS,
        host=_PG_HOST,
        port=_PG_PORT,
        database="postgres",
    )
    try:
        exists = await conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1", _TEST_DB
        )
        if not exists:
            await conn.execute(f'CREATE DATABASE "{_TEST_DB}"')
    finally:
        await conn.close()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema per test; skips the test when PostgreSQL is down."""
    try:
        await _ensure_database()
    except (OSError, asyncpg.PostgresError) as exc:
        pytest.skip(f"PostgreSQL not available ({_PG_HOST}:{_PG_PORT}): {exc}")

    engine = create_async_engine(_TEST_DB_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


async def _add(factory, *rows):
    async with factory() as session:
        session.add_all(rows)
        await session.commit()


async def _scalar(factory, statement):
    async with factory() as session:
        return (await session.execute(statement)).scalar_one()


class TestRoundRobinAssignment:
    @pytest.mark.asyncio
    async def test_two_leads_go_to_two_agents(self, session_factory):
        tenant = uuid4()
        agent_a, agent_b = uuid4(), uuid4()
        lead_1, lead_2 = uuid4(), uuid4()
        await _add(
            session_factory,
            Agent(agent_id=agent_a, tenant_id=tenant),
            Agent(agent_id=agent_b, tenant_id=tenant),
            Lead(lead_id=lead_1, tenant_id=tenant),
            Lead(lead_id=lead_2, tenant_id=tenant),
        )
        runner = BackgroundJobRunner(session_factory)

        assert await runner.run("assign", jobs.assign_new_lead, tenant_id=tenant, lead_id=lead_1)
        assert await runner.run("assign", jobs.assign_new_lead, tenant_id=tenant, lead_id=lead_2)

        assigned = set()
        for lead_id in (lead_1, lead_2):
            assigned.add(
                await _scalar(
                    session_factory,
                    select(AgentLead.agent_id).where(
                        AgentLead.lead_id == lead_id, AgentLead.status == "ACTIVE"
                    ),
                )
            )
        assert assigned == {agent_a, agent_b}
        totals = await _scalar(session_factory, select(func.sum(Agent.total_leads)))
        assert totals == 2

    @pytest.mark.asyncio
    async def test_second_active_link_is_refused(self, session_factory):
        tenant = uuid4()
        agent_a, agent_b, lead_id = uuid4(), uuid4(), uuid4()
        await _add(
            session_factory,
            Agent(agent_id=agent_a, tenant_id=tenant),
            Agent(agent_id=agent_b, tenant_id=tenant),
            Lead(lead_id=lead_id, tenant_id=tenant),
        )

        async with session_factory() as session:
            repo = AgentLeadRepository(session)
            first = await repo.create_active(agent_a, lead_id)
            second = await repo.create_active(agent_b, lead_id)
            await session.commit()

        assert first is not None
        assert second is None
        count = await _scalar(
            session_factory,
            select(func.count()).select_from(AgentLead).where(AgentLead.lead_id == lead_id),
        )
        assert count == 1


class TestCommission:
    @pytest.mark.asyncio
    async def test_calculated_once_per_booking(self, session_factory):
        tenant = uuid4()
        agent_id, booking_id = uuid4(), uuid4()
        await _add(
            session_factory,
            Agent(agent_id=agent_id, tenant_id=tenant, commission_rate=Decimal("2.5")),
            Booking(
                booking_id=booking_id,
                tenant_id=tenant,
                agent_id=agent_id,
                total_price=Decimal("2000.00"),
                status="CONFIRMED",
            ),
        )
        runner = BackgroundJobRunner(session_factory)

        await runner.run("commission", jobs.calculate_commission, booking_id=booking_id)
        await runner.run("commission", jobs.calculate_commission, booking_id=booking_id)

        amount = await _scalar(
            session_factory,
            select(Commission.amount).where(Commission.booking_id == booking_id),
        )
        assert amount == Decimal("50.00")
        deals = await _scalar(
            session_factory, select(Agent.total_deals).where(Agent.agent_id == agent_id)
        )
        assert deals == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_lead_agent_by_email(self, session_factory):
        tenant = uuid4()
        agent_id, user_id, lead_id, booking_id = uuid4(), uuid4(), uuid4(), uuid4()
        await _add(
            session_factory,
            Agent(agent_id=agent_id, tenant_id=tenant, commission_rate=Decimal("1.00")),
            User(user_id=user_id, tenant_id=tenant, email="buyer@example.com"),
            Lead(lead_id=lead_id, tenant_id=tenant, email="buyer@example.com"),
        )
        await _add(
            session_factory,
            AgentLead(agent_id=agent_id, lead_id=lead_id),
            Booking(
                booking_id=booking_id,
                tenant_id=tenant,
                user_id=user_id,
                total_price=Decimal("999.00"),
                status="CONFIRMED",
            ),
        )

        assert await BackgroundJobRunner(session_factory).run(
            "commission", jobs.calculate_commission, booking_id=booking_id
        )

        commission_agent = await _scalar(
            session_factory,
            select(Commission.agent_id).where(Commission.booking_id == booking_id),
        )
        assert commission_agent == agent_id


class TestEmailEvents:
    @pytest.mark.asyncio
    async def test_open_records_interaction_and_score(self, session_factory):
        tenant, lead_id = uuid4(), uuid4()
        await _add(session_factory, Lead(lead_id=lead_id, tenant_id=tenant))

        assert await BackgroundJobRunner(session_factory).run(
            "track_email_open",
            jobs.record_email_event,
            interaction_type="EMAIL_OPEN",
            lead_id=lead_id,
        )

        score = await _scalar(
            session_factory, select(Lead.lead_score).where(Lead.lead_id == lead_id)
        )
        assert score == 1
        kind = await _scalar(
            session_factory,
            select(LeadInteraction.type).where(LeadInteraction.lead_id == lead_id),
        )
        assert kind == "EMAIL_OPEN"

    @pytest.mark.asyncio
    async def test_unknown_lead_rolls_back(self, session_factory):
        ok = await BackgroundJobRunner(session_factory).run(
            "track_email_open",
            jobs.record_email_event,
            interaction_type="EMAIL_OPEN",
            lead_id=uuid4(),
        )

        assert ok is False
        count = await _scalar(
            session_factory, select(func.count()).select_from(LeadInteraction)
        )
        assert count == 0


async def _due_enrollment(factory, now, enrolled=True):
    tenant, lead_id, workflow_id, enrollment_id = uuid4(), uuid4(), uuid4(), uuid4()
    await _add(factory, Lead(lead_id=lead_id, tenant_id=tenant))
    await _add(
        factory,
        MarketingWorkflow(
            workflow_id=workflow_id,
            tenant_id=tenant,
            name="Nurture",
            trigger={"type": "LEAD_CREATED"},
            steps=[
                {"id": "s", "type": "START"},
                {"id": "d", "type": "DELAY", "duration": 1, "unit": "hours"},
            ],
            status="ACTIVE",
        ),
    )
    if not enrolled:
        return workflow_id, lead_id, None
    await _add(
        factory,
        WorkflowEnrollment(
            enrollment_id=enrollment_id,
            workflow_id=workflow_id,
            lead_id=lead_id,
            current_step="s",
            status="ACTIVE",
            next_action_at=now - timedelta(minutes=5),
        ),
    )
    return workflow_id, lead_id, enrollment_id


class TestWorkflowEnrollments:
    @pytest.mark.asyncio
    async def test_locked_enrollment_is_skipped_by_overlapping_tick(self, session_factory):
        now = datetime.now(timezone.utc)
        _, _, enrollment_id = await _due_enrollment(session_factory, now)
        engine = WorkflowEngine(email_service=AsyncMock())

        async with session_factory() as first:
            assert await engine.process_enrollment(first, enrollment_id=enrollment_id, now=now)

            async with session_factory() as second:
                assert await EnrollmentRepository(second).claim_due(enrollment_id, now) is None
                assert (
                    await engine.process_enrollment(second, enrollment_id=enrollment_id, now=now)
                    is False
                )
                await second.rollback()

            await first.commit()

        logs = await _scalar(session_factory, select(func.count()).select_from(WorkflowLog))
        assert logs == 1
        step = await _scalar(
            session_factory,
            select(WorkflowEnrollment.current_step).where(
                WorkflowEnrollment.enrollment_id == enrollment_id
            ),
        )
        assert step == "d"

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_insert_keeps_one_row(self, session_factory):
        now = datetime.now(timezone.utc)
        workflow_id, lead_id, _ = await _due_enrollment(session_factory, now, enrolled=False)

        returned = []
        for _ in range(2):
            async with session_factory() as session:
                enrollment = await EnrollmentRepository(session).insert_if_absent(
                    workflow_id=workflow_id,
                    lead_id=lead_id,
                    current_step="s",
                    next_action_at=now,
                )
                await session.commit()
                returned.append(enrollment.enrollment_id)

        assert returned[0] == returned[1]
        count = await _scalar(
            session_factory,
            select(func.count())
            .select_from(WorkflowEnrollment)
            .where(WorkflowEnrollment.workflow_id == workflow_id),
        )
        assert count == 1
