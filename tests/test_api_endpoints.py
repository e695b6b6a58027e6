"""HTTP-level tests with repositories and services replaced by mocks."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from app.api import deps
from app.api.v1.endpoints.public import TRACKING_PIXEL
from app.core.config import settings
from app.core.exceptions import LeadNotFoundError
from app.main import app
from app.models import Lead, LeadInteraction, MarketingWorkflow
from app.services import jobs


def _lead(**overrides) -> Lead:
    values = dict(
        lead_id=uuid4(),
        tenant_id=uuid4(),
        name="Sara",
        email="sara@example.com",
        status="NEW",
        priority="MEDIUM",
        source="website",
        lead_score=0,
        preferences={},
    )
    values.update(overrides)
    return Lead(**values)


def _override(dependency, value):
    async def _provide():
        return value

    app.dependency_overrides[dependency] = _provide


def _runner():
    runner = MagicMock()
    runner.run = AsyncMock(return_value=True)
    return runner


class TestHealthAndCORS:
    @pytest.mark.asyncio
    async def test_health(self, async_client):
        response = await async_client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "app": settings.APP_NAME}

    @pytest.mark.asyncio
    async def test_cors_headers_on_get(self, async_client):
        response = await async_client.get(
            "/api/v1/health", headers={"Origin": "http://localhost:3000"}
        )

        assert response.headers.get("access-control-allow-origin") == "http://localhost:3000"


class TestPublicCapture:
    @pytest.mark.asyncio
    async def test_new_lead_returns_201(self, async_client):
        lead = _lead()
        service = MagicMock()
        service.capture_lead = AsyncMock(return_value={"lead": lead, "created": True})
        _override(deps.get_lead_capture_service, service)
        _override(deps.get_lead_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/public/leads/capture",
            json={"tenant_id": str(lead.tenant_id), "contact": "sara@example.com"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["created"] is True
        assert body["lead"]["lead_id"] == str(lead.lead_id)
        assert service.capture_lead.await_args.kwargs["channel"] == "widget"

    @pytest.mark.asyncio
    async def test_re_engaged_lead_returns_200(self, async_client):
        lead = _lead(notes="[Update] Re-engaged via chatbot.")
        service = MagicMock()
        service.capture_lead = AsyncMock(return_value={"lead": lead, "created": False})
        _override(deps.get_lead_capture_service, service)
        _override(deps.get_lead_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/public/leads/capture",
            json={"tenant_id": str(lead.tenant_id), "phone": "+971500000001", "source": "chatbot"},
        )

        assert response.status_code == 200
        assert response.json()["created"] is False
        assert service.capture_lead.await_args.kwargs["channel"] == "chatbot"

    @pytest.mark.asyncio
    async def test_empty_body_uses_validation_format(self, async_client):
        _override(deps.get_lead_capture_service, MagicMock())
        _override(deps.get_lead_repo, AsyncMock())

        response = await async_client.post("/api/v1/public/leads/capture", json={})

        assert response.status_code == 422
        body = response.json()
        assert body["type"] == "validation_error"
        assert body["errors"]

    @pytest.mark.asyncio
    async def test_invalid_email_is_rejected(self, async_client):
        _override(deps.get_lead_capture_service, MagicMock())
        _override(deps.get_lead_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/public/leads/capture",
            json={"tenant_id": str(uuid4()), "email": "not-an-email"},
        )

        assert response.status_code == 422


class TestTracking:
    @pytest.mark.asyncio
    async def test_open_serves_pixel_and_schedules_event(self, async_client):
        runner = _runner()
        _override(deps.get_job_runner, runner)
        lead_id, campaign_id = uuid4(), uuid4()

        response = await async_client.get(
            f"/api/v1/public/track/open?l={lead_id}&c={campaign_id}"
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        assert "no-cache" in response.headers["cache-control"]
        assert response.content == TRACKING_PIXEL
        name, job = runner.run.await_args.args
        assert name == "track_email_open"
        assert job is jobs.record_email_event
        assert runner.run.await_args.kwargs["lead_id"] == lead_id
        assert runner.run.await_args.kwargs["campaign_id"] == campaign_id

    @pytest.mark.asyncio
    async def test_open_with_failing_job_still_serves_pixel(self, async_client):
        runner = MagicMock()
        runner.run = AsyncMock(return_value=False)
        _override(deps.get_job_runner, runner)

        response = await async_client.get(f"/api/v1/public/track/open?l={uuid4()}")

        assert response.status_code == 200
        assert response.content == TRACKING_PIXEL

    @pytest.mark.asyncio
    async def test_open_with_garbage_ids_records_nothing(self, async_client):
        runner = _runner()
        _override(deps.get_job_runner, runner)

        response = await async_client.get("/api/v1/public/track/open?l=garbage")

        assert response.status_code == 200
        runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_click_redirects_to_target(self, async_client):
        runner = _runner()
        _override(deps.get_job_runner, runner)
        lead_id = uuid4()

        response = await async_client.get(
            "/api/v1/public/track/click",
            params={"l": str(lead_id), "w": str(uuid4()), "u": "https://example.com/x?y=1"},
        )

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com/x?y=1"
        kwargs = runner.run.await_args.kwargs
        assert kwargs["interaction_type"] == "EMAIL_CLICK"
        assert kwargs["target_url"] == "https://example.com/x?y=1"

    @pytest.mark.asyncio
    async def test_click_without_target_goes_home(self, async_client):
        _override(deps.get_job_runner, _runner())

        response = await async_client.get("/api/v1/public/track/click?l=nope")

        assert response.status_code == 302
        assert response.headers["location"] == "/"


class TestInteractions:
    @pytest.mark.asyncio
    async def test_track_returns_new_score(self, async_client):
        tenant = uuid4()
        lead_id = uuid4()
        interaction = LeadInteraction(
            interaction_id=uuid4(),
            lead_id=lead_id,
            type="FORM_SUBMIT",
            score_weight=20,
            details={"form": "contact"},
            occurred_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        tracker = MagicMock()
        tracker.track = AsyncMock(return_value={"interaction": interaction, "lead_score": 25})
        lead_repo = AsyncMock()
        _override(deps.get_interaction_tracker, tracker)
        _override(deps.get_lead_repo, lead_repo)
        _override(deps.get_interaction_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/interactions/track",
            json={"lead_id": str(lead_id), "type": "FORM_SUBMIT", "metadata": {"form": "contact"}},
            headers={"X-Tenant-Id": str(tenant)},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["lead_score"] == 25
        assert body["interaction"]["metadata"] == {"form": "contact"}
        assert tracker.track.await_args.kwargs["tenant_id"] == tenant
        lead_repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_lead_is_404(self, async_client):
        tracker = MagicMock()
        tracker.track = AsyncMock(side_effect=LeadNotFoundError())
        _override(deps.get_interaction_tracker, tracker)
        _override(deps.get_lead_repo, AsyncMock())
        _override(deps.get_interaction_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/interactions/track",
            json={"email": "ghost@example.com", "type": "EMAIL_OPEN"},
            headers={"X-Tenant-Id": str(uuid4())},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "lead_not_found"

    @pytest.mark.asyncio
    async def test_missing_tenant_header_resolves_nothing(self, async_client):
        tracker = MagicMock()
        tracker.track = AsyncMock()
        _override(deps.get_interaction_tracker, tracker)
        _override(deps.get_lead_repo, AsyncMock())
        _override(deps.get_interaction_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/interactions/track",
            json={"email": "a@b.com", "type": "EMAIL_OPEN"},
        )

        assert response.status_code == 400
        assert response.json()["type"] == "missing_tenant"
        tracker.track.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lead_identifier_required(self, async_client):
        response = await async_client.post(
            "/api/v1/interactions/track",
            json={"type": "EMAIL_OPEN"},
            headers={"X-Tenant-Id": str(uuid4())},
        )

        assert response.status_code == 422
        assert response.json()["type"] == "validation_error"


class TestTenantScoping:
    @pytest.mark.asyncio
    async def test_missing_tenant_header_is_400(self, async_client):
        _override(deps.get_workflow_repo, AsyncMock())

        response = await async_client.get("/api/v1/workflows")

        assert response.status_code == 400
        assert response.json()["type"] == "missing_tenant"

    @pytest.mark.asyncio
    async def test_lead_from_other_tenant_is_404(self, async_client):
        lead_repo = AsyncMock()
        lead_repo.get_in_tenant = AsyncMock(return_value=None)
        _override(deps.get_lead_repo, lead_repo)
        _override(deps.get_interaction_repo, AsyncMock())

        response = await async_client.get(
            f"/api/v1/leads/{uuid4()}/interactions", headers={"X-Tenant-Id": str(uuid4())}
        )

        assert response.status_code == 404


class TestWorkflows:
    @pytest.mark.asyncio
    async def test_create_stores_camel_case_steps(self, async_client):
        tenant = uuid4()
        template_id = uuid4()
        repo = AsyncMock()
        repo.create = AsyncMock(
            side_effect=lambda **kw: MarketingWorkflow(
                workflow_id=uuid4(), created_at=datetime.now(timezone.utc), **kw
            )
        )
        _override(deps.get_workflow_repo, repo)
        templates = AsyncMock()
        templates.existing_ids_in_tenant = AsyncMock(return_value=[template_id])
        _override(deps.get_template_repo, templates)

        response = await async_client.post(
            "/api/v1/workflows",
            json={
                "name": "Welcome",
                "trigger": {"type": "LEAD_CREATED"},
                "steps": [
                    {"id": "s", "type": "START"},
                    {"id": "e", "type": "EMAIL", "templateId": str(template_id)},
                ],
            },
            headers={"X-Tenant-Id": str(tenant)},
        )

        assert response.status_code == 201
        assert templates.existing_ids_in_tenant.await_args.args == ([template_id], tenant)
        stored = repo.create.await_args.kwargs
        assert stored["tenant_id"] == tenant
        assert stored["trigger"] == {"type": "LEAD_CREATED"}
        assert "templateId" in stored["steps"][1]
        repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_step_ids_rejected(self, async_client):
        repo = AsyncMock()
        _override(deps.get_workflow_repo, repo)
        _override(deps.get_template_repo, AsyncMock())

        response = await async_client.post(
            "/api/v1/workflows",
            json={
                "name": "Broken",
                "trigger": {"type": "LEAD_CREATED"},
                "steps": [
                    {"id": "a", "type": "START"},
                    {"id": "c", "type": "CONDITION", "noSteps": [{"id": "a", "type": "TAG", "tag": "x"}]},
                ],
            },
            headers={"X-Tenant-Id": str(uuid4())},
        )

        assert response.status_code == 422
        assert response.json()["type"] == "invalid_workflow_definition"
        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_template_is_404(self, async_client):
        repo = AsyncMock()
        _override(deps.get_workflow_repo, repo)
        templates = AsyncMock()
        templates.existing_ids_in_tenant = AsyncMock(return_value=[])
        _override(deps.get_template_repo, templates)
        foreign = uuid4()

        response = await async_client.post(
            "/api/v1/workflows",
            json={
                "name": "Borrowed",
                "trigger": {"type": "LEAD_CREATED"},
                "steps": [
                    {"id": "s", "type": "START"},
                    {"id": "e", "type": "EMAIL", "templateId": str(foreign)},
                ],
            },
            headers={"X-Tenant-Id": str(uuid4())},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "template_not_found"
        assert str(foreign) in response.json()["detail"]
        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_run_tick(self, async_client):
        _override(deps.get_workflow_engine, MagicMock())
        _override(deps.get_session_factory, MagicMock())

        with patch(
            "app.api.v1.endpoints.workflows.process_workflows",
            AsyncMock(return_value={"due": 4, "processed": 3, "failed": 1}),
        ):
            response = await async_client.post("/api/v1/workflows/run")

        assert response.status_code == 200
        assert response.json() == {"success": True, "due": 4, "processed": 3, "failed": 1}


def _bookings(exists=True):
    repo = AsyncMock()
    repo.exists = AsyncMock(return_value=exists)
    return repo


class TestCommissionTrigger:
    @pytest.mark.asyncio
    async def test_confirmation_schedules_calculation(self, async_client):
        runner = _runner()
        _override(deps.get_job_runner, runner)
        _override(deps.get_booking_repo, _bookings())
        booking_id = uuid4()

        response = await async_client.post(
            f"/api/v1/commissions/bookings/{booking_id}",
            json={"previous_status": "PENDING", "status": "CONFIRMED"},
        )

        assert response.status_code == 202
        assert response.json()["scheduled"] is True
        assert runner.run.await_args.args == ("calculate_commission", jobs.calculate_commission)
        assert runner.run.await_args.kwargs == {"booking_id": booking_id}

    @pytest.mark.asyncio
    async def test_cancellation_schedules_nothing(self, async_client):
        runner = _runner()
        _override(deps.get_job_runner, runner)
        _override(deps.get_booking_repo, _bookings())

        response = await async_client.post(
            f"/api/v1/commissions/bookings/{uuid4()}",
            json={"previous_status": "CONFIRMED", "status": "CANCELLED"},
        )

        assert response.status_code == 202
        assert response.json()["scheduled"] is False
        runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_booking_is_404(self, async_client):
        runner = _runner()
        _override(deps.get_job_runner, runner)
        _override(deps.get_booking_repo, _bookings(exists=False))

        response = await async_client.post(
            f"/api/v1/commissions/bookings/{uuid4()}",
            json={"previous_status": "PENDING", "status": "CONFIRMED"},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "booking_not_found"
        runner.run.assert_not_awaited()
