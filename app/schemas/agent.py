from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.common import SuccessResponse
from app.schemas.lead import AssignmentOut


class AgentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    agent_id: UUID
    tenant_id: UUID
    specialization: Optional[str] = None
    commission_rate: float
    status: str
    total_leads: int
    total_deals: int
    last_lead_assigned_at: Optional[datetime] = None


class AssignmentResponse(SuccessResponse):
    assignment: AssignmentOut


class RoundRobinResponse(SuccessResponse):
    lead_id: UUID
    agent: Optional[AgentOut] = None


class CommissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    commission_id: UUID
    agent_id: UUID
    booking_id: UUID
    amount: float
    rate_snapshot: float
    status: str
    created_at: Optional[datetime] = None


class CommissionListResponse(SuccessResponse):
    commissions: List[CommissionOut]
