from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    model_validator,
)
from app.schemas.common import InteractionType, SuccessResponse


class TrackInteractionRequest(BaseModel):
    """Body for POST /api/v1/interactions/track."""

    lead_id: Optional[UUID] = None
    email: Optional[EmailStr] = None
    type: InteractionType
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def require_lead_identifier(self) -> "TrackInteractionRequest":
        if self.lead_id is None and self.email is None:
            raise ValueError("Either lead_id or email is required")
        return self


class InteractionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    interaction_id: UUID
    lead_id: UUID
    type: str
    score_weight: int
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("details", "metadata")
    )
    occurred_at: Optional[datetime] = None


class TrackInteractionResponse(SuccessResponse):
    interaction: InteractionOut
    lead_score: int


class InteractionListResponse(SuccessResponse):
    interactions: List[InteractionOut]
