from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from app.models.commission import Commission
from app.repositories.base import BaseRepository


class CommissionRepository(BaseRepository):
    """Encapsulates queries against the ``commissions`` table."""

    async def insert_if_absent(
        self,
        agent_id: UUID,
        booking_id: UUID,
        amount: Decimal,
        rate_snapshot: Decimal,
    ) -> Optional[Commission]:
        """Insert one commission per booking.

        ``ON CONFLICT DO NOTHING`` on the unique ``booking_id`` makes a
        repeated trigger a no-op; ``None`` is returned in that case.
        """
        stmt = (
            insert(Commission)
            .values(
                agent_id=agent_id,
                booking_id=booking_id,
                amount=amount,
                rate_snapshot=rate_snapshot,
                status="PENDING",
            )
            .on_conflict_do_nothing(index_elements=[Commission.booking_id])
            .returning(Commission)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_agent(self, agent_id: UUID) -> List[Commission]:
        """Return an agent's commissions, newest first."""
        result = await self._db.execute(
            select(Commission)
            .where(Commission.agent_id == agent_id)
            .order_by(Commission.created_at.desc())
        )
        return list(result.scalars().all())
