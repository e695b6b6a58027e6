import logging
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from app.core.constants import INTERACTION_SCORE_WEIGHTS
from app.core.exceptions import LeadNotFoundError
from app.repositories.interaction_repository import InteractionRepository
from app.repositories.lead_repository import LeadRepository

logger = logging.getLogger(__name__)


class InteractionTracker:
    """Records typed lead events and applies the scoring-weight table.

    The interaction insert and the score increment share the caller's
    transaction; nothing here commits.  Interactive endpoints commit
    after :meth:`track` returns and background jobs commit through
    ``BackgroundJobRunner``, so the score and the event log either both
    land or neither does.
    """

    def __init__(self, weights: Optional[Mapping[str, int]] = None) -> None:
        self._weights: Mapping[str, int] = (
            weights if weights is not None else INTERACTION_SCORE_WEIGHTS
        )

    def weight_for(self, interaction_type: str) -> int:
        """Return the score weight for a type; unknown types weigh 0."""
        return self._weights.get(interaction_type, 0)

    async def track(
        self,
        interaction_type: str,
        lead_repo: LeadRepository,
        interaction_repo: InteractionRepository,
        lead_id: Optional[UUID] = None,
        email: Optional[str] = None,
        tenant_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Record one interaction and bump the lead's score.

        The lead is resolved by id when given, otherwise by the most
        recently created lead with *email* (scoped to *tenant_id* when
        one is supplied).

        Raises:
            LeadNotFoundError: If no lead resolves.
        """
        lead = None
        if lead_id is not None:
            lead = await lead_repo.get_by_id(lead_id)
            if lead is not None and tenant_id is not None and lead.tenant_id != tenant_id:
                lead = None
        elif email:
            lead = await lead_repo.latest_by_email(email, tenant_id=tenant_id)

        if lead is None:
            raise LeadNotFoundError()

        weight = self.weight_for(interaction_type)
        interaction = await interaction_repo.create(
            lead_id=lead.lead_id,
            interaction_type=interaction_type,
            score_weight=weight,
            details=metadata,
        )
        lead_score = await lead_repo.increment_score(lead.lead_id, weight)

        logger.debug(
            "Tracked %s for lead %s (+%d → %d)",
            interaction_type,
            lead.lead_id,
            weight,
            lead_score,
        )
        return {"interaction": interaction, "lead_score": lead_score}
