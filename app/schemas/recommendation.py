from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import SuccessResponse


class RecommendedUnit(BaseModel):
    unit_id: UUID
    unit_code: Optional[str] = None
    unit_category: Optional[str] = None
    price: float = 0


class RecommendedProperty(BaseModel):
    property_id: UUID
    title: str
    city: Optional[str] = None
    property_type: Optional[str] = None
    units: List[RecommendedUnit] = Field(default_factory=list)
    match_score: int = Field(..., ge=0, le=100)


class RecommendationResponse(SuccessResponse):
    lead_id: UUID
    recommendations: List[RecommendedProperty]


class RecommendationEmailResponse(SuccessResponse):
    lead_id: UUID
    property_count: int
