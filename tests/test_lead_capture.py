"""Tests for lead capture deduplication and follow-up scheduling."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from app.core.exceptions import InvalidLeadDataError
from app.services import jobs
from app.services.lead_capture_service import LeadCaptureService, split_contact

from tests.factories import make_lead


def _lead_repo(existing=None):
    repo = AsyncMock()
    repo.find_by_email_or_phone = AsyncMock(return_value=existing)
    repo.create = AsyncMock(side_effect=lambda **kw: make_lead(**kw))

    async def _update(lead, **fields):
        for key, value in fields.items():
            setattr(lead, key, value)
        return lead

    repo.update_fields = AsyncMock(side_effect=_update)
    return repo


def _runner():
    runner = MagicMock()
    runner.run = AsyncMock(return_value=True)
    return runner


class TestSplitContact:
    @pytest.mark.parametrize(
        "email,phone,contact,expected",
        [
            (None, None, "Sara@Example.com", ("sara@example.com", None)),
            (None, None, "+971500000001", (None, "+971500000001")),
            ("a@b.co", None, "+971500000001", ("a@b.co", "+971500000001")),
            ("a@b.co", None, "other@b.co", ("a@b.co", None)),
            (None, None, "   ", (None, None)),
        ],
    )
    def test_cases(self, email, phone, contact, expected):
        assert split_contact(email, phone, contact) == expected


class TestCaptureLead:
    @pytest.mark.asyncio
    async def test_requires_email_or_phone(self, mock_cache):
        service = LeadCaptureService(runner=_runner(), cache=mock_cache)

        with pytest.raises(InvalidLeadDataError):
            await service.capture_lead(uuid4(), {"name": "x"}, _lead_repo())

    @pytest.mark.asyncio
    async def test_new_lead_is_created_and_follow_ups_scheduled(self, mock_cache):
        runner = _runner()
        repo = _lead_repo()
        tenant = uuid4()

        result = await LeadCaptureService(runner=runner, cache=mock_cache).capture_lead(
            tenant,
            {"contact": "new@example.com", "source": "website", "message": "Hi"},
            repo,
        )

        assert result["created"] is True
        kwargs = repo.create.await_args.kwargs
        assert kwargs["email"] == "new@example.com"
        assert kwargs["name"] == "Web Inquiry"
        assert kwargs["status"] == "NEW"
        assert kwargs["message"] == "Hi"
        repo.commit.assert_awaited_once()
        job_names = [c.args[0] for c in runner.run.await_args_list]
        assert job_names == ["assign_lead", "enroll_lead_created"]
        assert runner.run.await_args_list[0].args[1] is jobs.assign_new_lead

    @pytest.mark.asyncio
    async def test_chatbot_lead_gets_chatbot_name(self, mock_cache):
        repo = _lead_repo()

        await LeadCaptureService(runner=_runner(), cache=mock_cache).capture_lead(
            uuid4(), {"phone": "+971500000009", "source": "chatbot"}, repo, channel="chatbot"
        )

        assert repo.create.await_args.kwargs["name"] == "Chatbot User"
        assert repo.create.await_args.kwargs["source"] == "chatbot"

    @pytest.mark.asyncio
    async def test_duplicate_contact_re_engages(self, mock_cache):
        existing = make_lead(notes="Called once")
        runner = _runner()
        repo = _lead_repo(existing)
        property_id = uuid4()

        result = await LeadCaptureService(runner=runner, cache=mock_cache).capture_lead(
            existing.tenant_id,
            {"email": "LAYLA@example.com", "notes": "Wants a viewing", "property_id": property_id},
            repo,
        )

        assert result["created"] is False
        assert result["lead"] is existing
        assert existing.notes == (
            "Called once\n[Update] Re-engaged via widget form. Wants a viewing"
        )
        assert existing.property_id == property_id
        repo.create.assert_not_awaited()
        runner.run.assert_not_awaited()
        repo.find_by_email_or_phone.assert_awaited_once_with(
            existing.tenant_id, email="layla@example.com", phone=None
        )

    @pytest.mark.asyncio
    async def test_lock_released_even_on_failure(self, mock_cache, mock_redis):
        repo = _lead_repo()
        repo.commit = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await LeadCaptureService(runner=_runner(), cache=mock_cache).capture_lead(
                uuid4(), {"email": "x@example.com"}, repo
            )

        mock_redis.delete.assert_awaited_once()
        assert mock_redis.delete.await_args.args[0].startswith("lead_capture:")

    @pytest.mark.asyncio
    async def test_lock_held_elsewhere_is_never_released(self, mock_cache, mock_redis):
        mock_redis.set = AsyncMock(return_value=False)
        repo = _lead_repo()

        with patch("app.services.lead_capture_service._LOCK_RETRY_DELAY", 0):
            result = await LeadCaptureService(runner=_runner(), cache=mock_cache).capture_lead(
                uuid4(), {"email": "x@y.com"}, repo
            )

        assert result["created"] is True
        mock_redis.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notification_scheduled_when_configured(self, mock_cache):
        runner = _runner()

        with patch("app.services.lead_capture_service.settings") as settings:
            settings.LEAD_NOTIFICATION_EMAIL = "sales@example.com"
            settings.CAPTURE_LOCK_TTL = 10
            await LeadCaptureService(runner=runner, cache=mock_cache).capture_lead(
                uuid4(), {"email": "x@example.com"}, _lead_repo()
            )

        job_names = [c.args[0] for c in runner.run.await_args_list]
        assert job_names[-1] == "notify_new_lead"

    @pytest.mark.asyncio
    async def test_background_tasks_defer_follow_ups(self, mock_cache):
        runner = _runner()
        background_tasks = MagicMock()

        await LeadCaptureService(runner=runner, cache=mock_cache).capture_lead(
            uuid4(), {"email": "x@example.com"}, _lead_repo(), background_tasks=background_tasks
        )

        runner.run.assert_not_awaited()
        assert background_tasks.add_task.call_count == 2
        assert background_tasks.add_task.call_args_list[0].args[0] is runner.run
