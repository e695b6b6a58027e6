from uuid import UUID

from app.schemas.common import SuccessResponse


class CampaignLaunchResponse(SuccessResponse):
    campaign_id: UUID
    total_recipients: int
    delivered_count: int


class CampaignStatsResponse(SuccessResponse):
    sent_campaigns: int
    total_delivered: int
    total_opened: int
    total_clicked: int
    total_submissions: int
