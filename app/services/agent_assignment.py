import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from app.core.exceptions import AgentNotFoundError, AssignmentConflictError
from app.models.agent import Agent
from app.models.agent_lead import AgentLead
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.agent_repository import AgentRepository

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def pick_least_recently_assigned(agents: Sequence[Agent]) -> Optional[Agent]:
    """Return the next agent in round-robin order, or ``None``.

    Agents never assigned a lead come first regardless of creation
    order; the rest are ordered by ``last_lead_assigned_at`` and then
    ``created_at``.  The ordering is applied here rather than trusted
    to the database's NULL placement.
    """
    if not agents:
        return None

    def _key(agent: Agent):
        assigned = agent.last_lead_assigned_at
        return (
            assigned is not None,
            assigned or _EPOCH,
            agent.created_at or _EPOCH,
        )

    return min(agents, key=_key)


class AgentAssignmentEngine:
    """Round-robin, manual assignment and reassignment of leads to agents.

    All three paths write ``agent_leads`` rows; the partial unique index
    on active rows is the final guard against two active assignments
    for the same lead.  Only round-robin and manual assignment touch the
    agent's counters.  Nothing here commits.
    """

    async def assign_round_robin(
        self,
        tenant_id: UUID,
        lead_id: UUID,
        agent_repo: AgentRepository,
        agent_lead_repo: AgentLeadRepository,
    ) -> Optional[Agent]:
        """Assign *lead_id* to the least recently assigned ACTIVE agent.

        Returns ``None`` when the tenant has no active agents; the lead
        simply stays unassigned.  If the lead already has an active
        agent (e.g. a concurrent assignment won), that agent is returned
        and no counters change.
        """
        agents = await agent_repo.get_active_for_tenant(tenant_id)
        agent = pick_least_recently_assigned(agents)
        if agent is None:
            logger.info(
                "No active agents in tenant %s; lead %s left unassigned",
                tenant_id,
                lead_id,
            )
            return None

        link = await agent_lead_repo.create_active(agent.agent_id, lead_id)
        if link is None:
            current_agent_id = await agent_lead_repo.get_active_agent_id(lead_id)
            logger.info(
                "Lead %s already assigned to agent %s; round-robin skipped",
                lead_id,
                current_agent_id,
            )
            if current_agent_id is None:
                return None
            return await agent_repo.get_by_id(current_agent_id)

        agent = await agent_repo.stamp_assignment(agent)
        logger.info("Round-robin assigned lead %s → agent %s", lead_id, agent.agent_id)
        return agent

    async def assign_lead(
        self,
        agent_id: UUID,
        lead_id: UUID,
        agent_repo: AgentRepository,
        agent_lead_repo: AgentLeadRepository,
        tenant_id: Optional[UUID] = None,
    ) -> AgentLead:
        """Manually assign a lead to a specific agent.

        Assigning the agent that already holds the lead returns the
        existing link unchanged.

        Raises:
            AgentNotFoundError: If the agent does not exist in the tenant.
            AssignmentConflictError: If another agent holds the lead.
        """
        agent = await self._get_agent(agent_id, agent_repo, tenant_id)

        existing = await agent_lead_repo.get_active_for_lead(lead_id)
        if existing is not None:
            if existing.agent_id == agent_id:
                return existing
            raise AssignmentConflictError()

        link = await agent_lead_repo.create_active(agent_id, lead_id)
        if link is None:
            existing = await agent_lead_repo.get_active_for_lead(lead_id)
            if existing is not None and existing.agent_id == agent_id:
                return existing
            raise AssignmentConflictError()

        await agent_repo.stamp_assignment(agent)
        logger.info("Manually assigned lead %s → agent %s", lead_id, agent_id)
        return link

    async def reassign(
        self,
        lead_id: UUID,
        new_agent_id: Optional[UUID],
        agent_repo: AgentRepository,
        agent_lead_repo: AgentLeadRepository,
        tenant_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """Deactivate every active link of the lead, then link *new_agent_id*.

        Passing ``None`` unassigns the lead.  Agent counters are not
        touched on this path.
        """
        if new_agent_id is not None:
            await self._get_agent(new_agent_id, agent_repo, tenant_id)

        deactivated = await agent_lead_repo.deactivate_all_for_lead(lead_id)

        link: Optional[AgentLead] = None
        if new_agent_id is not None:
            link = await agent_lead_repo.create_active(new_agent_id, lead_id)
            if link is None:
                raise AssignmentConflictError(
                    "Lead was assigned concurrently; retry the reassignment"
                )

        logger.info(
            "Reassigned lead %s → %s (%d link(s) deactivated)",
            lead_id,
            new_agent_id or "unassigned",
            deactivated,
        )
        return {"assignment": link, "deactivated": deactivated}

    @staticmethod
    async def _get_agent(
        agent_id: UUID, agent_repo: AgentRepository, tenant_id: Optional[UUID]
    ) -> Agent:
        agent = await agent_repo.get_by_id(agent_id)
        if agent is None or (tenant_id is not None and agent.tenant_id != tenant_id):
            raise AgentNotFoundError()
        return agent
