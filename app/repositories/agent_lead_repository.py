"""Agent-lead repository – assignment junction operations."""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, text, update
from sqlalchemy.dialects.postgresql import insert

from app.models.agent_lead import AgentLead
from app.models.lead import Lead
from app.repositories.base import BaseRepository


class AgentLeadRepository(BaseRepository):
    """Encapsulates queries against the ``agent_leads`` table."""

    async def create_active(self, agent_id: UUID, lead_id: UUID) -> Optional[AgentLead]:
        """Insert an ACTIVE primary link unless the lead already has one.

        Relies on the partial unique index on ``lead_id WHERE status =
        'ACTIVE'``.  Returns the new row, or ``None`` when the insert was
        skipped because another active link exists.
        """
        stmt = (
            insert(AgentLead)
            .values(agent_id=agent_id, lead_id=lead_id, is_primary=True, status="ACTIVE")
            .on_conflict_do_nothing(
                index_elements=[AgentLead.lead_id],
                index_where=text("status = 'ACTIVE'"),
            )
            .returning(AgentLead)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_for_lead(self, lead_id: UUID) -> Optional[AgentLead]:
        """Return the lead's ACTIVE link, or ``None``."""
        result = await self._db.execute(
            select(AgentLead).where(
                AgentLead.lead_id == lead_id, AgentLead.status == "ACTIVE"
            )
        )
        return result.scalar_one_or_none()

    async def get_active_agent_id(self, lead_id: UUID) -> Optional[UUID]:
        """Return the ``agent_id`` currently assigned to a lead, or ``None``."""
        result = await self._db.execute(
            select(AgentLead.agent_id).where(
                AgentLead.lead_id == lead_id, AgentLead.status == "ACTIVE"
            )
        )
        return result.scalar_one_or_none()

    async def latest_active_agent_for_email(self, email: str) -> Optional[UUID]:
        """Agent of the newest lead with *email* that has an ACTIVE link.

        Covers leads captured before the person registered a user account.
        """
        result = await self._db.execute(
            select(AgentLead.agent_id)
            .join(Lead, Lead.lead_id == AgentLead.lead_id)
            .where(
                func.lower(Lead.email) == email.lower(),
                AgentLead.status == "ACTIVE",
            )
            .order_by(Lead.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def deactivate_all_for_lead(self, lead_id: UUID) -> int:
        """Flip every ACTIVE link of a lead to INACTIVE; return how many."""
        result = await self._db.execute(
            update(AgentLead)
            .where(AgentLead.lead_id == lead_id, AgentLead.status == "ACTIVE")
            .values(status="INACTIVE")
        )
        return result.rowcount or 0
