from datetime import datetime, timezone
from sqlalchemy import event

from app.models.lead import Lead
from app.models.agent import Agent
from app.models.campaign import Campaign
from app.models.workflow import MarketingWorkflow, WorkflowEnrollment


# Auto updated_at
@event.listens_for(Lead, "before_update")
@event.listens_for(Agent, "before_update")
@event.listens_for(Campaign, "before_update")
@event.listens_for(MarketingWorkflow, "before_update")
@event.listens_for(WorkflowEnrollment, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)
