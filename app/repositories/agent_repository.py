from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.sql import func

from app.models.agent import Agent
from app.repositories.base import BaseRepository


class AgentRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``agents`` table."""

    async def get_by_id(self, agent_id: UUID) -> Optional[Agent]:
        """Return a single agent by primary key, or ``None``."""
        result = await self._db.execute(select(Agent).where(Agent.agent_id == agent_id))
        return result.scalar_one_or_none()

    async def get_active_for_tenant(self, tenant_id: UUID) -> List[Agent]:
        """Return ACTIVE agents of a tenant, least recently assigned first.

        Never-assigned agents (``last_lead_assigned_at IS NULL``) sort
        before everyone else; ``created_at`` breaks ties.
        """
        result = await self._db.execute(
            select(Agent)
            .where(Agent.tenant_id == tenant_id, Agent.status == "ACTIVE")
            .order_by(
                Agent.last_lead_assigned_at.asc().nulls_first(),
                Agent.created_at.asc(),
            )
        )
        return list(result.scalars().all())

    async def stamp_assignment(self, agent: Agent) -> Agent:
        """Set ``last_lead_assigned_at`` to now and bump ``total_leads``.

        The increment is evaluated in SQL; the instance is refreshed so
        callers see the stored values.
        """
        agent.last_lead_assigned_at = func.now()
        agent.total_leads = Agent.total_leads + 1
        await self._db.flush()
        await self._db.refresh(agent)
        return agent

    async def increment_total_deals(self, agent_id: UUID) -> None:
        """Increment ``total_deals`` by 1."""
        await self._db.execute(
            update(Agent)
            .where(Agent.agent_id == agent_id)
            .values(total_deals=Agent.total_deals + 1)
        )
