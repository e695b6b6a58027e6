import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from pydantic import BaseModel
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.background import BackgroundJobRunner
from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_db
from app.core.exceptions import LeadNotFoundError, MissingTenantContextError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


class Actor(BaseModel):
    """Caller identity as forwarded by the upstream authentication layer."""

    actor_id: Optional[UUID] = None
    role: Optional[str] = None
    tenant_id: Optional[UUID] = None


async def get_current_actor(
    x_actor_id: Optional[UUID] = Header(None),
    x_actor_role: Optional[str] = Header(None),
    x_tenant_id: Optional[UUID] = Header(None),
) -> Actor:
    return Actor(actor_id=x_actor_id, role=x_actor_role, tenant_id=x_tenant_id)


def require_tenant(actor: Actor) -> UUID:
    """Return the actor's tenant or raise ``MissingTenantContextError``."""
    if actor.tenant_id is None:
        raise MissingTenantContextError()
    return actor.tenant_id


async def get_tenant_id(actor: Actor = Depends(get_current_actor)) -> UUID:
    return require_tenant(actor)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Redis:
    """Get an async Redis client instance using connection pooling."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning("Redis unavailable – caching disabled for this request")
        return None  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_lead_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.lead_repository import LeadRepository

    return LeadRepository(db)


async def get_interaction_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.interaction_repository import InteractionRepository

    return InteractionRepository(db)


async def get_agent_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.agent_repository import AgentRepository

    return AgentRepository(db)


async def get_agent_lead_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.agent_lead_repository import AgentLeadRepository

    return AgentLeadRepository(db)


async def get_commission_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.commission_repository import CommissionRepository

    return CommissionRepository(db)


async def get_booking_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.booking_repository import BookingRepository

    return BookingRepository(db)


async def get_property_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.property_repository import PropertyRepository

    return PropertyRepository(db)


async def get_campaign_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.campaign_repository import CampaignRepository

    return CampaignRepository(db)


async def get_workflow_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.workflow_repository import WorkflowRepository

    return WorkflowRepository(db)


async def get_template_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.template_repository import TemplateRepository

    return TemplateRepository(db)


async def get_enrollment_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.workflow_repository import EnrollmentRepository

    return EnrollmentRepository(db)


async def get_tenant_lead(
    lead_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    lead_repo=Depends(get_lead_repo),
):
    """Resolve the ``{lead_id}`` path parameter within the caller's tenant."""
    lead = await lead_repo.get_in_tenant(lead_id, tenant_id)
    if lead is None:
        raise LeadNotFoundError()
    return lead


# ---------------------------------------------------------------------------
# Cache service / background runner factories
# ---------------------------------------------------------------------------


async def get_cache_service(
    redis_client: Redis = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from app.core.cache import CacheService

    return CacheService(redis_client=redis_client)


async def get_session_factory():
    """Factory used by work that must open its own sessions (jobs, ticks)."""
    return AsyncSessionLocal


async def get_job_runner(
    session_factory=Depends(get_session_factory),
) -> BackgroundJobRunner:
    """Runner whose jobs open their own sessions from the app's pool."""
    return BackgroundJobRunner(session_factory)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_email_service():
    from app.services.email_service import EmailService

    return EmailService()


async def get_interaction_tracker():
    from app.services.interaction_tracker import InteractionTracker

    return InteractionTracker()


async def get_assignment_engine():
    from app.services.agent_assignment import AgentAssignmentEngine

    return AgentAssignmentEngine()


async def get_lead_capture_service(
    runner: BackgroundJobRunner = Depends(get_job_runner),
    cache=Depends(get_cache_service),
):
    """Build a :class:`LeadCaptureService` with injected dependencies."""
    from app.services.lead_capture_service import LeadCaptureService

    return LeadCaptureService(runner=runner, cache=cache)


async def get_property_match_service(
    cache=Depends(get_cache_service),
):
    """Build a :class:`PropertyMatchService` backed by the recommendation cache."""
    from app.services.property_match_service import PropertyMatchService

    return PropertyMatchService(cache=cache)


async def get_workflow_engine(
    email_service=Depends(get_email_service),
    assignment_engine=Depends(get_assignment_engine),
):
    from app.services.workflow_engine import WorkflowEngine

    return WorkflowEngine(
        email_service=email_service, assignment_engine=assignment_engine
    )


async def get_campaign_service(
    email_service=Depends(get_email_service),
):
    from app.services.campaign_service import CampaignService

    return CampaignService(email_service=email_service)
