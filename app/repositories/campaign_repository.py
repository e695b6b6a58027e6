from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import selectinload

from app.models.campaign import AudienceGroup, Campaign
from app.repositories.base import BaseRepository


class CampaignRepository(BaseRepository):
    """Encapsulates queries against ``campaigns`` and their audience groups."""

    async def get_for_launch(self, campaign_id: UUID, tenant_id: UUID) -> Optional[Campaign]:
        """Return a tenant's campaign with template and audience leads loaded."""
        result = await self._db.execute(
            select(Campaign)
            .where(Campaign.campaign_id == campaign_id, Campaign.tenant_id == tenant_id)
            .options(
                selectinload(Campaign.template),
                selectinload(Campaign.group).selectinload(AudienceGroup.leads),
            )
            .with_for_update(of=Campaign)
        )
        return result.scalar_one_or_none()

    async def mark_sent(
        self, campaign: Campaign, total_recipients: int, delivered_count: int
    ) -> None:
        campaign.status = "SENT"
        campaign.total_recipients = total_recipients
        campaign.delivered_count = delivered_count
        campaign.sent_at = func.now()
        await self._db.flush()

    async def increment_opened(self, campaign_id: UUID) -> None:
        await self._db.execute(
            update(Campaign)
            .where(Campaign.campaign_id == campaign_id)
            .values(opened_count=Campaign.opened_count + 1)
        )

    async def increment_clicked(self, campaign_id: UUID) -> None:
        await self._db.execute(
            update(Campaign)
            .where(Campaign.campaign_id == campaign_id)
            .values(clicked_count=Campaign.clicked_count + 1)
        )

    async def sent_totals(self, tenant_id: UUID) -> Dict[str, int]:
        """Aggregate delivery counters across the tenant's SENT campaigns."""
        result = await self._db.execute(
            select(
                func.count(Campaign.campaign_id),
                func.coalesce(func.sum(Campaign.delivered_count), 0),
                func.coalesce(func.sum(Campaign.opened_count), 0),
                func.coalesce(func.sum(Campaign.clicked_count), 0),
            ).where(Campaign.tenant_id == tenant_id, Campaign.status == "SENT")
        )
        sent, delivered, opened, clicked = result.one()
        return {
            "sent_campaigns": int(sent),
            "total_delivered": int(delivered),
            "total_opened": int(opened),
            "total_clicked": int(clicked),
        }
