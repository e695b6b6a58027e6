"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from app.repositories.lead_repository import LeadRepository
from app.repositories.interaction_repository import InteractionRepository
from app.repositories.agent_repository import AgentRepository
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.property_repository import PropertyRepository
from app.repositories.template_repository import TemplateRepository
from app.repositories.campaign_repository import CampaignRepository
from app.repositories.workflow_repository import (
    WorkflowRepository,
    EnrollmentRepository,
    WorkflowLogRepository,
)

__all__ = [
    "LeadRepository",
    "InteractionRepository",
    "AgentRepository",
    "AgentLeadRepository",
    "BookingRepository",
    "CommissionRepository",
    "PropertyRepository",
    "TemplateRepository",
    "CampaignRepository",
    "WorkflowRepository",
    "EnrollmentRepository",
    "WorkflowLogRepository",
]
