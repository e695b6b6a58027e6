"""Tests for commission attribution and idempotency."""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from app.services.commission_calculator import (
    CommissionCalculator,
    compute_commission_amount,
    should_calculate_commission,
)
from app.schemas.common import BookingStatus

from tests.factories import make_agent


def _booking(*, agent_id=None, user=None, total_price=Decimal("1000")):
    booking = MagicMock()
    booking.booking_id = uuid4()
    booking.agent_id = agent_id
    booking.user = user
    booking.total_price = total_price
    return booking


def _repos(booking, agent, *, user_lead_agent=None, email_agent=None):
    booking_repo = AsyncMock()
    booking_repo.get_with_user = AsyncMock(return_value=booking)

    lead_repo = AsyncMock()
    lead_repo.latest_for_user = AsyncMock(return_value=MagicMock(lead_id=uuid4()))

    agent_lead_repo = AsyncMock()
    agent_lead_repo.get_active_agent_id = AsyncMock(return_value=user_lead_agent)
    agent_lead_repo.latest_active_agent_for_email = AsyncMock(return_value=email_agent)

    agent_repo = AsyncMock()
    agent_repo.get_by_id = AsyncMock(
        side_effect=lambda agent_id: agent if agent and agent_id == agent.agent_id else None
    )
    agent_repo.increment_total_deals = AsyncMock()

    # Unique booking_id: only the first insert wins
    stored = {}

    async def _insert(agent_id, booking_id, amount, rate_snapshot):
        if booking_id in stored:
            return None
        stored[booking_id] = MagicMock(
            agent_id=agent_id, booking_id=booking_id, amount=amount, rate_snapshot=rate_snapshot
        )
        return stored[booking_id]

    commission_repo = AsyncMock()
    commission_repo.insert_if_absent = AsyncMock(side_effect=_insert)
    return booking_repo, lead_repo, agent_lead_repo, agent_repo, commission_repo


class TestShouldCalculate:
    @pytest.mark.parametrize(
        "old,new,expected",
        [
            ("PENDING", "CONFIRMED", True),
            ("CONFIRMED", "COMPLETED", True),
            (None, "CONFIRMED", True),
            ("CONFIRMED", "CONFIRMED", False),
            ("PENDING", "CANCELLED", False),
            ("CONFIRMED", "PENDING", False),
        ],
    )
    def test_transitions(self, old, new, expected):
        assert should_calculate_commission(old, new) is expected

    def test_accepts_enum_members(self):
        assert should_calculate_commission(BookingStatus.PENDING, BookingStatus.COMPLETED)


class TestAmount:
    def test_five_percent_of_thousand(self):
        assert compute_commission_amount(Decimal("1000"), Decimal("5")) == Decimal("50.00")

    def test_rounds_half_up_to_cents(self):
        assert compute_commission_amount(Decimal("333.33"), Decimal("2.5")) == Decimal("8.33")
        assert compute_commission_amount(Decimal("0.30"), Decimal("5")) == Decimal("0.02")

    def test_missing_price_is_zero(self):
        assert compute_commission_amount(None, 5) == Decimal("0.00")


class TestCalculate:
    @pytest.mark.asyncio
    async def test_direct_agent_earns_commission(self):
        agent = make_agent(commission_rate=Decimal("5.00"))
        booking = _booking(agent_id=agent.agent_id)
        repos = _repos(booking, agent)

        commission = await CommissionCalculator().calculate(booking.booking_id, *repos)

        assert commission.amount == Decimal("50.00")
        assert commission.rate_snapshot == Decimal("5.00")
        assert commission.agent_id == agent.agent_id
        repos[3].increment_total_deals.assert_awaited_once_with(agent.agent_id)

    @pytest.mark.asyncio
    async def test_second_trigger_is_a_noop(self):
        agent = make_agent(commission_rate=Decimal("5"))
        booking = _booking(agent_id=agent.agent_id)
        repos = _repos(booking, agent)
        calculator = CommissionCalculator()

        first = await calculator.calculate(booking.booking_id, *repos)
        second = await calculator.calculate(booking.booking_id, *repos)

        assert first is not None
        assert second is None
        repos[3].increment_total_deals.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_falls_back_to_users_latest_lead(self):
        agent = make_agent()
        user = MagicMock(user_id=uuid4(), email="buyer@example.com")
        booking = _booking(user=user)
        repos = _repos(booking, agent, user_lead_agent=agent.agent_id)

        commission = await CommissionCalculator().calculate(booking.booking_id, *repos)

        assert commission.agent_id == agent.agent_id
        repos[2].latest_active_agent_for_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_email_match(self):
        agent = make_agent()
        user = MagicMock(user_id=uuid4(), email="buyer@example.com")
        booking = _booking(user=user)
        repos = _repos(booking, agent, user_lead_agent=None, email_agent=agent.agent_id)

        commission = await CommissionCalculator().calculate(booking.booking_id, *repos)

        assert commission.agent_id == agent.agent_id
        repos[2].latest_active_agent_for_email.assert_awaited_once_with("buyer@example.com")

    @pytest.mark.asyncio
    async def test_no_agent_resolves(self):
        user = MagicMock(user_id=uuid4(), email="buyer@example.com")
        booking = _booking(user=user)
        repos = _repos(booking, None)

        assert await CommissionCalculator().calculate(booking.booking_id, *repos) is None
        repos[4].insert_if_absent.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_amount_is_skipped(self):
        agent = make_agent(commission_rate=Decimal("0"))
        booking = _booking(agent_id=agent.agent_id)
        repos = _repos(booking, agent)

        assert await CommissionCalculator().calculate(booking.booking_id, *repos) is None
        repos[4].insert_if_absent.assert_not_awaited()
        repos[3].increment_total_deals.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_booking(self):
        repos = _repos(None, None)

        assert await CommissionCalculator().calculate(uuid4(), *repos) is None
