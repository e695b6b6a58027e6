"""Tests for campaign launch and stats."""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from app.core.exceptions import CampaignAlreadyLaunchedError, CampaignNotFoundError
from app.services.campaign_service import CampaignService


def _campaign(leads, template=True, status="DRAFT"):
    return SimpleNamespace(
        campaign_id=uuid4(),
        name="Spring launch",
        status=status,
        group=SimpleNamespace(leads=leads),
        template=(
            SimpleNamespace(
                subject="Hi {{name}}",
                content='<p>Hello {{NAME}}</p><a href="https://example.com/offer">Offer</a>',
            )
            if template
            else None
        ),
    )


def _lead(name="Omar", email="omar@example.com"):
    return SimpleNamespace(lead_id=uuid4(), name=name, email=email)


@pytest.fixture
def email_service():
    service = MagicMock()
    service.send_template_email = AsyncMock(return_value=True)
    return service


@pytest.fixture
def service(email_service):
    return CampaignService(email_service=email_service, public_base_url="https://crm.test")


class TestLaunch:
    @pytest.mark.asyncio
    async def test_sends_personalised_tracked_copy(self, service, email_service):
        lead = _lead()
        campaign = _campaign([lead])
        repo = AsyncMock()
        repo.get_for_launch = AsyncMock(return_value=campaign)

        result = await service.launch(campaign.campaign_id, uuid4(), repo)

        assert result["delivered_count"] == 1
        to, subject, html = email_service.send_template_email.await_args.args
        assert to == "omar@example.com"
        assert subject == "Hi Omar"
        assert "Hello Omar" in html
        assert f"c={campaign.campaign_id}" in html
        assert "https://crm.test/api/v1/public/track/click?" in html
        assert "https://crm.test/api/v1/public/track/open?" in html
        repo.mark_sent.assert_awaited_once_with(
            campaign, total_recipients=1, delivered_count=1
        )

    @pytest.mark.asyncio
    async def test_counts_only_delivered(self, service, email_service):
        campaign = _campaign([_lead(), _lead(email=None), _lead(name=None, email="x@example.com")])
        email_service.send_template_email = AsyncMock(side_effect=[True, False])
        repo = AsyncMock()
        repo.get_for_launch = AsyncMock(return_value=campaign)

        result = await service.launch(campaign.campaign_id, uuid4(), repo)

        assert result == {
            "campaign_id": campaign.campaign_id,
            "total_recipients": 3,
            "delivered_count": 1,
        }
        assert email_service.send_template_email.await_count == 2

    @pytest.mark.asyncio
    async def test_without_template_sends_nothing(self, service, email_service):
        campaign = _campaign([_lead()], template=False)
        repo = AsyncMock()
        repo.get_for_launch = AsyncMock(return_value=campaign)

        result = await service.launch(campaign.campaign_id, uuid4(), repo)

        assert result["delivered_count"] == 0
        email_service.send_template_email.assert_not_awaited()
        repo.mark_sent.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_relaunch_is_a_conflict(self, service):
        repo = AsyncMock()
        repo.get_for_launch = AsyncMock(return_value=_campaign([], status="SENT"))

        with pytest.raises(CampaignAlreadyLaunchedError):
            await service.launch(uuid4(), uuid4(), repo)
        repo.mark_sent.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_campaign(self, service):
        repo = AsyncMock()
        repo.get_for_launch = AsyncMock(return_value=None)

        with pytest.raises(CampaignNotFoundError):
            await service.launch(uuid4(), uuid4(), repo)


@pytest.mark.asyncio
async def test_stats_adds_form_submissions(service):
    tenant = uuid4()
    campaign_repo = AsyncMock()
    campaign_repo.sent_totals = AsyncMock(
        return_value={"sent_campaigns": 2, "total_delivered": 10, "total_opened": 4, "total_clicked": 1}
    )
    interaction_repo = AsyncMock()
    interaction_repo.count_by_type = AsyncMock(return_value=7)

    stats = await service.stats(tenant, campaign_repo, interaction_repo)

    assert stats["total_submissions"] == 7
    assert stats["sent_campaigns"] == 2
    interaction_repo.count_by_type.assert_awaited_once_with("FORM_SUBMIT", tenant)
