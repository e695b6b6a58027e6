"""Lead-specific Pydantic schemas (capture, status update, response)."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, EmailStr

from app.schemas.common import LeadPriority, LeadSource, LeadStatus, SuccessResponse


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class LeadCaptureRequest(BaseModel):
    """Public widget / chatbot capture payload.

    ``contact`` is a free-text fallback used by the chatbot: it is
    treated as an email when it contains ``@`` and as a phone number
    otherwise.  Presence of an email or phone is checked by the capture
    service after ``contact`` has been split.
    """

    tenant_id: UUID
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    contact: Optional[str] = Field(None, max_length=255)
    source: LeadSource = LeadSource.website
    message: Optional[str] = None
    notes: Optional[str] = None
    property_id: Optional[UUID] = None
    unit_id: Optional[UUID] = None


class LeadCreate(BaseModel):
    """Staff-entered lead; same dedup rules as public capture."""

    name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = None
    source: LeadSource = LeadSource.other
    priority: LeadPriority = LeadPriority.MEDIUM
    budget: Optional[float] = Field(None, ge=0)
    property_id: Optional[UUID] = None
    unit_id: Optional[UUID] = None
    notes: Optional[str] = None
    preferred_date: Optional[datetime] = None
    agent_id: Optional[UUID] = Field(
        None, description="Manual assignment; round-robin is used when omitted."
    )


class LeadStatusUpdate(BaseModel):
    status: LeadStatus
    notes: Optional[str] = None


class LeadAgentUpdate(BaseModel):
    """Reassign (``agent_id`` set) or unassign (``agent_id`` null) a lead."""

    agent_id: Optional[UUID] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lead_id: UUID
    tenant_id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    priority: str
    source: str
    lead_score: int = Field(..., ge=0)
    budget: Optional[float] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    tags: Optional[str] = None
    property_id: Optional[UUID] = None
    unit_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadCaptureResponse(SuccessResponse):
    created: bool
    lead: LeadOut


class LeadResponse(SuccessResponse):
    lead: LeadOut


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    agent_lead_id: UUID
    agent_id: UUID
    lead_id: UUID
    is_primary: bool
    status: str
    assigned_at: Optional[datetime] = None


class LeadAgentUpdateResponse(SuccessResponse):
    lead_id: UUID
    assignment: Optional[AssignmentOut] = None
    deactivated: int


class LeadListResponse(SuccessResponse):
    leads: List[LeadOut]
