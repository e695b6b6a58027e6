"""Interaction repository – append-only lead event log."""

from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select

from app.models.interaction import LeadInteraction
from app.models.lead import Lead
from app.repositories.base import BaseRepository


class InteractionRepository(BaseRepository):
    """Encapsulates queries against the ``lead_interactions`` table."""

    async def create(
        self,
        lead_id: UUID,
        interaction_type: str,
        score_weight: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> LeadInteraction:
        """Insert an interaction row and return it with server defaults loaded."""
        interaction = LeadInteraction(
            lead_id=lead_id,
            type=interaction_type,
            score_weight=score_weight,
            details=details or {},
        )
        self._db.add(interaction)
        await self._db.flush()
        await self._db.refresh(interaction)
        return interaction

    async def list_for_lead(self, lead_id: UUID, limit: int = 50) -> List[LeadInteraction]:
        """Return the newest *limit* interactions for a lead."""
        result = await self._db.execute(
            select(LeadInteraction)
            .where(LeadInteraction.lead_id == lead_id)
            .order_by(LeadInteraction.occurred_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def recent_with_property(
        self, lead_id: UUID, types: Sequence[str], limit: int
    ) -> List[LeadInteraction]:
        """Newest interactions of *types* whose metadata carries ``propertyId``."""
        result = await self._db.execute(
            select(LeadInteraction)
            .where(
                LeadInteraction.lead_id == lead_id,
                LeadInteraction.type.in_(list(types)),
                LeadInteraction.details.has_key("propertyId"),
            )
            .order_by(LeadInteraction.occurred_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_type(self, interaction_type: str, tenant_id: UUID) -> int:
        """Count a tenant's interactions of one type."""
        result = await self._db.execute(
            select(func.count())
            .select_from(LeadInteraction)
            .join(Lead, Lead.lead_id == LeadInteraction.lead_id)
            .where(LeadInteraction.type == interaction_type, Lead.tenant_id == tenant_id)
        )
        return result.scalar_one()
