from app.models.base import Base
from app.models.user import User
from app.models.property import Property, Unit, UnitPricing
from app.models.lead import Lead
from app.models.interaction import LeadInteraction
from app.models.agent import Agent
from app.models.agent_lead import AgentLead
from app.models.booking import Booking
from app.models.commission import Commission
from app.models.email_template import EmailTemplate
from app.models.campaign import AudienceGroup, Campaign, audience_group_leads
from app.models.workflow import MarketingWorkflow, WorkflowEnrollment, WorkflowLog

# Import event listeners to register them
from app.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Property",
    "Unit",
    "UnitPricing",
    "Lead",
    "LeadInteraction",
    "Agent",
    "AgentLead",
    "Booking",
    "Commission",
    "EmailTemplate",
    "AudienceGroup",
    "Campaign",
    "audience_group_leads",
    "MarketingWorkflow",
    "WorkflowEnrollment",
    "WorkflowLog",
]
