import asyncio
import logging
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import BackgroundTasks

from app.core.background import BackgroundJobRunner, Job
from app.core.cache import CacheService
from app.core.config import settings
from app.core.exceptions import InvalidLeadDataError
from app.repositories.lead_repository import LeadRepository
from app.schemas.common import LeadSource
from app.services import jobs

logger = logging.getLogger(__name__)

# How long a capture waits for a concurrent capture of the same contact
_LOCK_RETRIES = 10
_LOCK_RETRY_DELAY = 0.1

_CHANNEL_LABELS = {
    "chatbot": "chatbot",
    "widget": "widget form",
    "staff": "staff entry",
}


def split_contact(
    email: Optional[str], phone: Optional[str], contact: Optional[str]
) -> Tuple[Optional[str], Optional[str]]:
    """Resolve email/phone, using free-text *contact* for whichever is missing.

    A contact containing ``@`` is an email, anything else a phone.
    Emails are lower-cased.
    """
    contact = (contact or "").strip()
    if contact:
        if "@" in contact:
            email = email or contact
        else:
            phone = phone or contact
    email = email.strip().lower() if email else None
    phone = phone.strip() if phone else None
    return email or None, phone or None


class LeadCaptureService:
    """Create-or-re-engage a lead, then kick off follow-up jobs.

    Dependencies are injected via the constructor so the class remains
    stateless and easily testable.
    """

    def __init__(
        self,
        runner: BackgroundJobRunner,
        cache: Optional[CacheService] = None,
    ) -> None:
        self._runner = runner
        self._cache: CacheService = cache or CacheService()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def capture_lead(
        self,
        tenant_id: UUID,
        lead_data: Dict[str, Any],
        lead_repo: LeadRepository,
        channel: str = "widget",
        agent_id: Optional[UUID] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Dict[str, Any]:
        """Execute the capture pipeline.

        Steps:
        1. Split ``contact`` into email / phone and require one of them
        2. Take a short Redis lock on (tenant, contact)
        3. Re-engage an existing lead with the same email OR phone, or
           create a new one, and commit
        4. For new leads only, schedule assignment, LEAD_CREATED
           enrollment and the notification email

        Returns ``{"lead": Lead, "created": bool}``.

        Raises:
            InvalidLeadDataError: If neither email nor phone is present.
        """
        data = dict(lead_data)
        email, phone = split_contact(
            data.pop("email", None), data.pop("phone", None), data.pop("contact", None)
        )
        if not email and not phone:
            raise InvalidLeadDataError("Either email or phone is required")

        lock_key = f"lead_capture:{tenant_id}:{email or phone}"
        locked = await self._acquire(lock_key)
        try:
            existing = await lead_repo.find_by_email_or_phone(
                tenant_id, email=email, phone=phone
            )
            if existing is not None:
                lead = await self._re_engage(existing, data, channel, lead_repo)
                created = False
            else:
                lead = await self._create(tenant_id, email, phone, data, lead_repo)
                created = True
            await lead_repo.commit()
        finally:
            if locked:
                await self._cache.release_lock(lock_key)

        if created:
            logger.info("Captured new lead %s via %s", lead.lead_id, channel)
            await self._schedule_follow_ups(
                tenant_id, lead.lead_id, agent_id, background_tasks
            )
        else:
            logger.info("Re-engaged lead %s via %s", lead.lead_id, channel)

        return {"lead": lead, "created": created}

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _acquire(self, lock_key: str) -> bool:
        """Wait briefly for the capture lock; ``False`` means we never held it."""
        for _ in range(_LOCK_RETRIES):
            if await self._cache.acquire_lock(lock_key, settings.CAPTURE_LOCK_TTL):
                return True
            await asyncio.sleep(_LOCK_RETRY_DELAY)
        logger.warning("Capture lock %s still held; proceeding without it", lock_key)
        return False

    async def _re_engage(
        self, lead, data: Dict[str, Any], channel: str, lead_repo: LeadRepository
    ):
        label = _CHANNEL_LABELS.get(channel, channel)
        note = f"[Update] Re-engaged via {label}."
        extra = data.get("notes") or data.get("message")
        if extra:
            note = f"{note} {extra}"
        notes = f"{lead.notes}\n{note}" if lead.notes else note

        changes: Dict[str, Any] = {"notes": notes}
        for key in ("property_id", "unit_id"):
            if data.get(key) is not None:
                changes[key] = data[key]
        return await lead_repo.update_fields(lead, **changes)

    async def _create(
        self,
        tenant_id: UUID,
        email: Optional[str],
        phone: Optional[str],
        data: Dict[str, Any],
        lead_repo: LeadRepository,
    ):
        source = data.pop("source", None) or LeadSource.website
        source = getattr(source, "value", source)
        if not data.get("name"):
            data["name"] = "Chatbot User" if source == LeadSource.chatbot.value else "Web Inquiry"
        if "priority" in data:
            data["priority"] = getattr(data["priority"], "value", data["priority"])
        return await lead_repo.create(
            tenant_id=tenant_id,
            email=email,
            phone=phone,
            source=source,
            status="NEW",
            lead_score=0,
            **{k: v for k, v in data.items() if v is not None},
        )

    async def _schedule_follow_ups(
        self,
        tenant_id: UUID,
        lead_id: UUID,
        agent_id: Optional[UUID],
        background_tasks: Optional[BackgroundTasks],
    ) -> None:
        follow_ups = [
            (
                "assign_lead",
                jobs.assign_new_lead,
                {"tenant_id": tenant_id, "lead_id": lead_id, "agent_id": agent_id},
            ),
            (
                "enroll_lead_created",
                jobs.enroll_new_lead,
                {"tenant_id": tenant_id, "lead_id": lead_id},
            ),
        ]
        if settings.LEAD_NOTIFICATION_EMAIL:
            follow_ups.append(("notify_new_lead", jobs.notify_new_lead, {"lead_id": lead_id}))

        for name, job, kwargs in follow_ups:
            await self._schedule(name, job, kwargs, background_tasks)

    async def _schedule(
        self,
        name: str,
        job: Job,
        kwargs: Dict[str, Any],
        background_tasks: Optional[BackgroundTasks],
    ) -> None:
        if background_tasks is not None:
            background_tasks.add_task(self._runner.run, name, job, **kwargs)
        else:
            await self._runner.run(name, job, **kwargs)
