from uuid import UUID

from fastapi import APIRouter, Depends

from app.repositories.interaction_repository import InteractionRepository
from app.repositories.lead_repository import LeadRepository
from app.schemas.interaction import (
    InteractionOut,
    TrackInteractionRequest,
    TrackInteractionResponse,
)
from app.services.interaction_tracker import InteractionTracker
from app.api.deps import (
    get_interaction_repo,
    get_interaction_tracker,
    get_lead_repo,
    get_tenant_id,
)

router = APIRouter(prefix="/interactions", tags=["Interactions"])


@router.post("/track", response_model=TrackInteractionResponse, status_code=201)
async def track_interaction(
    request_body: TrackInteractionRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    tracker: InteractionTracker = Depends(get_interaction_tracker),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    interaction_repo: InteractionRepository = Depends(get_interaction_repo),
) -> TrackInteractionResponse:
    """Record an interaction and apply its score weight atomically.

    The lead is resolved by ``lead_id`` or, failing that, the most
    recent lead with ``email``.  Either way it must belong to the
    caller's tenant.
    """
    result = await tracker.track(
        request_body.type.value,
        lead_repo,
        interaction_repo,
        lead_id=request_body.lead_id,
        email=request_body.email,
        tenant_id=tenant_id,
        metadata=request_body.metadata,
    )
    await lead_repo.commit()
    return TrackInteractionResponse(
        interaction=InteractionOut.model_validate(result["interaction"]),
        lead_score=result["lead_score"],
    )
