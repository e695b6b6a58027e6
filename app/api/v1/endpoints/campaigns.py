from fastapi import APIRouter, Depends
from uuid import UUID

from app.repositories.campaign_repository import CampaignRepository
from app.repositories.interaction_repository import InteractionRepository
from app.schemas.campaign import CampaignLaunchResponse, CampaignStatsResponse
from app.services.campaign_service import CampaignService
from app.api.deps import (
    get_campaign_repo,
    get_campaign_service,
    get_interaction_repo,
    get_tenant_id,
)

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


@router.get("/stats", response_model=CampaignStatsResponse)
async def campaign_stats(
    tenant_id: UUID = Depends(get_tenant_id),
    service: CampaignService = Depends(get_campaign_service),
    campaign_repo: CampaignRepository = Depends(get_campaign_repo),
    interaction_repo: InteractionRepository = Depends(get_interaction_repo),
) -> CampaignStatsResponse:
    totals = await service.stats(tenant_id, campaign_repo, interaction_repo)
    return CampaignStatsResponse(**totals)


@router.post("/{campaign_id}/launch", response_model=CampaignLaunchResponse)
async def launch_campaign(
    campaign_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    service: CampaignService = Depends(get_campaign_service),
    campaign_repo: CampaignRepository = Depends(get_campaign_repo),
) -> CampaignLaunchResponse:
    """Send the campaign to its audience group; a second launch is a 409."""
    result = await service.launch(campaign_id, tenant_id, campaign_repo)
    await campaign_repo.commit()
    return CampaignLaunchResponse(**result)
