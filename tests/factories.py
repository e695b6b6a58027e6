"""Lightweight stand-ins for ORM rows used across the unit tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4


def make_lead(**overrides):
    lead = MagicMock()
    lead.lead_id = overrides.pop("lead_id", uuid4())
    lead.tenant_id = overrides.pop("tenant_id", uuid4())
    lead.name = overrides.pop("name", "Layla")
    lead.email = overrides.pop("email", "layla@example.com")
    lead.phone = overrides.pop("phone", None)
    lead.status = overrides.pop("status", "NEW")
    lead.lead_score = overrides.pop("lead_score", 0)
    lead.budget = overrides.pop("budget", None)
    lead.preferences = overrides.pop("preferences", {})
    lead.tags = overrides.pop("tags", None)
    lead.notes = overrides.pop("notes", None)
    for key, value in overrides.items():
        setattr(lead, key, value)
    return lead


def make_agent(**overrides):
    agent = MagicMock()
    agent.agent_id = overrides.pop("agent_id", uuid4())
    agent.tenant_id = overrides.pop("tenant_id", uuid4())
    agent.commission_rate = overrides.pop("commission_rate", 2.5)
    agent.total_leads = overrides.pop("total_leads", 0)
    agent.total_deals = overrides.pop("total_deals", 0)
    agent.last_lead_assigned_at = overrides.pop("last_lead_assigned_at", None)
    agent.created_at = overrides.pop(
        "created_at", datetime(2025, 1, 1, tzinfo=timezone.utc)
    )
    for key, value in overrides.items():
        setattr(agent, key, value)
    return agent


class FakeAgentStore:
    """In-memory agents + agent_leads with the repositories' async surface.

    ``create_active`` honours the one-ACTIVE-link-per-lead rule the same
    way the partial unique index does.
    """

    def __init__(self, agents):
        self.agents = {a.agent_id: a for a in agents}
        self.links = []
        self._clock = 0

        self.agent_repo = AsyncMock()
        self.agent_repo.get_by_id = AsyncMock(side_effect=self._get_agent)
        self.agent_repo.get_active_for_tenant = AsyncMock(
            side_effect=lambda tenant_id: list(self.agents.values())
        )
        self.agent_repo.stamp_assignment = AsyncMock(side_effect=self._stamp)

        self.agent_lead_repo = AsyncMock()
        self.agent_lead_repo.create_active = AsyncMock(side_effect=self._create_active)
        self.agent_lead_repo.get_active_for_lead = AsyncMock(side_effect=self._active_link)
        self.agent_lead_repo.get_active_agent_id = AsyncMock(
            side_effect=self._active_agent_id
        )
        self.agent_lead_repo.deactivate_all_for_lead = AsyncMock(
            side_effect=self._deactivate
        )

    async def _get_agent(self, agent_id):
        return self.agents.get(agent_id)

    async def _stamp(self, agent):
        self._clock += 1
        agent.total_leads += 1
        agent.last_lead_assigned_at = datetime(2026, 1, 1, 0, 0, self._clock, tzinfo=timezone.utc)
        return agent

    async def _active_link(self, lead_id):
        for link in self.links:
            if link.lead_id == lead_id and link.status == "ACTIVE":
                return link
        return None

    async def _active_agent_id(self, lead_id):
        link = await self._active_link(lead_id)
        return link.agent_id if link else None

    async def _create_active(self, agent_id, lead_id):
        if await self._active_link(lead_id) is not None:
            return None
        link = MagicMock(agent_id=agent_id, lead_id=lead_id, status="ACTIVE")
        self.links.append(link)
        return link

    async def _deactivate(self, lead_id):
        count = 0
        for link in self.links:
            if link.lead_id == lead_id and link.status == "ACTIVE":
                link.status = "INACTIVE"
                count += 1
        return count

    def active_links(self, lead_id):
        return [l for l in self.links if l.lead_id == lead_id and l.status == "ACTIVE"]
