"""Commission calculation triggered by booking status changes.

Runs fire-and-forget after the booking update has responded, normally
via ``BackgroundJobRunner``, so it returns ``None`` instead of raising
when there is nothing to do.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from app.core.constants import COMMISSION_TRIGGER_STATUSES
from app.models.booking import Booking
from app.models.commission import Commission
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.agent_repository import AgentRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.lead_repository import LeadRepository

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def should_calculate_commission(old_status: Optional[str], new_status: str) -> bool:
    """True exactly when a booking moves *into* CONFIRMED or COMPLETED."""
    old_status = getattr(old_status, "value", old_status)
    new_status = getattr(new_status, "value", new_status)
    return new_status in COMMISSION_TRIGGER_STATUSES and old_status != new_status


def compute_commission_amount(total_price, rate) -> Decimal:
    """``total_price * rate / 100`` rounded half-up to cents."""
    amount = Decimal(str(total_price or 0)) * Decimal(str(rate or 0)) / Decimal(100)
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


class CommissionCalculator:
    async def calculate(
        self,
        booking_id: UUID,
        booking_repo: BookingRepository,
        lead_repo: LeadRepository,
        agent_lead_repo: AgentLeadRepository,
        agent_repo: AgentRepository,
        commission_repo: CommissionRepository,
    ) -> Optional[Commission]:
        """Create the booking's commission if an agent can be credited.

        Returns the new commission, or ``None`` when the booking is
        missing, no agent resolves, the amount is not positive, or a
        commission already exists for the booking.
        """
        booking = await booking_repo.get_with_user(booking_id)
        if booking is None:
            logger.info("Booking %s not found; no commission", booking_id)
            return None

        agent_id = await self._resolve_agent_id(booking, lead_repo, agent_lead_repo)
        if agent_id is None:
            logger.info("No agent found for booking %s", booking_id)
            return None

        agent = await agent_repo.get_by_id(agent_id)
        if agent is None:
            logger.warning("Agent %s for booking %s no longer exists", agent_id, booking_id)
            return None

        rate = Decimal(str(agent.commission_rate or 0))
        amount = compute_commission_amount(booking.total_price, rate)
        if amount <= 0:
            logger.info("Commission for booking %s is %s; skipped", booking_id, amount)
            return None

        commission = await commission_repo.insert_if_absent(
            agent_id=agent.agent_id,
            booking_id=booking.booking_id,
            amount=amount,
            rate_snapshot=rate,
        )
        if commission is None:
            logger.info("Commission already exists for booking %s", booking_id)
            return None

        await agent_repo.increment_total_deals(agent.agent_id)
        logger.info(
            "Commission of %s calculated for agent %s on booking %s",
            amount,
            agent.agent_id,
            booking_id,
        )
        return commission

    async def _resolve_agent_id(
        self,
        booking: Booking,
        lead_repo: LeadRepository,
        agent_lead_repo: AgentLeadRepository,
    ) -> Optional[UUID]:
        # Direct link on the booking wins.
        if booking.agent_id is not None:
            return booking.agent_id

        user = booking.user
        if user is None:
            return None

        recent_lead = await lead_repo.latest_for_user(user.user_id)
        if recent_lead is not None:
            agent_id = await agent_lead_repo.get_active_agent_id(recent_lead.lead_id)
            if agent_id is not None:
                return agent_id

        # The lead may predate the user account.
        if user.email:
            agent_id = await agent_lead_repo.latest_active_agent_for_email(user.email)
            if agent_id is not None:
                logger.info(
                    "Found agent %s via email fallback for booking %s",
                    agent_id,
                    booking.booking_id,
                )
                return agent_id
        return None
