import logging
from typing import Any, Dict, Optional
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import CampaignAlreadyLaunchedError, CampaignNotFoundError
from app.repositories.campaign_repository import CampaignRepository
from app.repositories.interaction_repository import InteractionRepository
from app.schemas.common import InteractionType
from app.services.email_personalization import personalize, prepare_tracked_email
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)


class CampaignService:
    """Sends a campaign to its audience group and reports delivery stats.

    Each recipient gets their own copy with ``{{name}}`` filled in, links
    routed through the click tracker and an open pixel, all tagged with
    ``c=<campaign_id>`` so the tracking endpoints can bump the
    campaign's counters.
    """

    def __init__(
        self,
        email_service: Optional[EmailService] = None,
        public_base_url: Optional[str] = None,
    ) -> None:
        self._email = email_service or EmailService()
        self._base_url = public_base_url or settings.PUBLIC_BASE_URL

    async def launch(
        self, campaign_id: UUID, tenant_id: UUID, campaign_repo: CampaignRepository
    ) -> Dict[str, Any]:
        """Send the campaign once and mark it SENT.

        Raises:
            CampaignNotFoundError: If the campaign is not in the tenant.
            CampaignAlreadyLaunchedError: If it was already sent.
        """
        campaign = await campaign_repo.get_for_launch(campaign_id, tenant_id)
        if campaign is None:
            raise CampaignNotFoundError()
        if campaign.status == "SENT":
            raise CampaignAlreadyLaunchedError()

        leads = list(campaign.group.leads) if campaign.group else []
        template = campaign.template
        delivered = 0

        if template is not None:
            for lead in leads:
                if not lead.email:
                    logger.warning("Campaign %s: lead %s has no email", campaign_id, lead.lead_id)
                    continue
                subject = personalize(template.subject or campaign.name, lead.name)
                html = prepare_tracked_email(
                    template.content,
                    lead.name,
                    self._base_url,
                    {"c": campaign.campaign_id, "l": lead.lead_id},
                )
                if await self._email.send_template_email(lead.email, subject, html):
                    delivered += 1

        await campaign_repo.mark_sent(
            campaign, total_recipients=len(leads), delivered_count=delivered
        )
        logger.info(
            "Campaign %s launched: %d of %d delivered", campaign_id, delivered, len(leads)
        )
        return {
            "campaign_id": campaign.campaign_id,
            "total_recipients": len(leads),
            "delivered_count": delivered,
        }

    async def stats(
        self,
        tenant_id: UUID,
        campaign_repo: CampaignRepository,
        interaction_repo: InteractionRepository,
    ) -> Dict[str, int]:
        totals = await campaign_repo.sent_totals(tenant_id)
        totals["total_submissions"] = await interaction_repo.count_by_type(
            InteractionType.FORM_SUBMIT.value, tenant_id
        )
        return totals
