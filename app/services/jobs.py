"""Fire-and-forget jobs scheduled after a request has responded.

Every job has the ``job(session, **kwargs)`` shape expected by
``BackgroundJobRunner.run``: repositories are built from the job's own
session and nothing here commits or catches; the runner does both.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.constants import LEAD_CREATED_TRIGGER
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.agent_repository import AgentRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.campaign_repository import CampaignRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.interaction_repository import InteractionRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.workflow_repository import EnrollmentRepository, WorkflowRepository
from app.services.agent_assignment import AgentAssignmentEngine
from app.services.commission_calculator import CommissionCalculator
from app.services.email_service import EmailService
from app.services.interaction_tracker import InteractionTracker
from app.services.workflow_engine import WorkflowEngine

logger = logging.getLogger(__name__)


async def assign_new_lead(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    lead_id: UUID,
    agent_id: Optional[UUID] = None,
) -> None:
    """Manual assignment when an agent was named, round-robin otherwise."""
    engine = AgentAssignmentEngine()
    agent_repo = AgentRepository(session)
    agent_lead_repo = AgentLeadRepository(session)
    if agent_id is not None:
        await engine.assign_lead(
            agent_id, lead_id, agent_repo, agent_lead_repo, tenant_id=tenant_id
        )
    else:
        await engine.assign_round_robin(tenant_id, lead_id, agent_repo, agent_lead_repo)


async def enroll_new_lead(session: AsyncSession, *, tenant_id: UUID, lead_id: UUID) -> None:
    enrolled = await WorkflowEngine().enroll_on_trigger(
        tenant_id,
        lead_id,
        LEAD_CREATED_TRIGGER,
        WorkflowRepository(session),
        LeadRepository(session),
        EnrollmentRepository(session),
    )
    if enrolled:
        logger.info("Lead %s enrolled into %d workflow(s)", lead_id, enrolled)


async def notify_new_lead(session: AsyncSession, *, lead_id: UUID) -> None:
    if not settings.LEAD_NOTIFICATION_EMAIL:
        return
    lead = await LeadRepository(session).get_by_id(lead_id)
    if lead is None:
        return
    await EmailService().send_lead_email(settings.LEAD_NOTIFICATION_EMAIL, lead)


async def calculate_commission(session: AsyncSession, *, booking_id: UUID) -> None:
    await CommissionCalculator().calculate(
        booking_id,
        BookingRepository(session),
        LeadRepository(session),
        AgentLeadRepository(session),
        AgentRepository(session),
        CommissionRepository(session),
    )


async def record_email_event(
    session: AsyncSession,
    *,
    interaction_type: str,
    lead_id: UUID,
    campaign_id: Optional[UUID] = None,
    workflow_id: Optional[UUID] = None,
    target_url: Optional[str] = None,
) -> None:
    """Record an EMAIL_OPEN / EMAIL_CLICK and bump the campaign counter."""
    metadata: Dict[str, Any] = {
        "campaignId": str(campaign_id) if campaign_id else None,
        "workflowId": str(workflow_id) if workflow_id else None,
    }
    if target_url:
        metadata["targetUrl"] = target_url

    await InteractionTracker().track(
        interaction_type,
        LeadRepository(session),
        InteractionRepository(session),
        lead_id=lead_id,
        metadata=metadata,
    )

    if campaign_id is not None:
        campaign_repo = CampaignRepository(session)
        if interaction_type == "EMAIL_CLICK":
            await campaign_repo.increment_clicked(campaign_id)
        else:
            await campaign_repo.increment_opened(campaign_id)
