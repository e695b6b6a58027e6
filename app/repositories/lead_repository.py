from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.sql import func

from app.models.lead import Lead
from app.repositories.base import BaseRepository


class LeadRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``leads`` table."""

    async def get_by_id(self, lead_id: UUID) -> Optional[Lead]:
        """Return a single lead by primary key, or ``None``."""
        result = await self._db.execute(select(Lead).where(Lead.lead_id == lead_id))
        return result.scalar_one_or_none()

    async def get_in_tenant(self, lead_id: UUID, tenant_id: UUID) -> Optional[Lead]:
        """Return a lead only if it belongs to *tenant_id*."""
        result = await self._db.execute(
            select(Lead).where(Lead.lead_id == lead_id, Lead.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def find_by_email_or_phone(
        self,
        tenant_id: UUID,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Optional[Lead]:
        """Find the newest lead in the tenant matching email OR phone.

        Dedup is logical (application level): the same person may
        legitimately share a phone with another lead's email, so the
        schema carries no unique constraint on either column.
        """
        clauses = []
        if email:
            clauses.append(func.lower(Lead.email) == email.lower())
        if phone:
            clauses.append(Lead.phone == phone)
        if not clauses:
            return None

        result = await self._db.execute(
            select(Lead)
            .where(Lead.tenant_id == tenant_id, or_(*clauses))
            .order_by(Lead.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_by_email(
        self, email: str, tenant_id: Optional[UUID] = None
    ) -> Optional[Lead]:
        """Return the most recently created lead with this email."""
        query = select(Lead).where(func.lower(Lead.email) == email.lower())
        if tenant_id is not None:
            query = query.where(Lead.tenant_id == tenant_id)
        result = await self._db.execute(
            query.order_by(Lead.created_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_for_user(self, user_id: UUID) -> Optional[Lead]:
        """Return the newest lead linked to a user account."""
        result = await self._db.execute(
            select(Lead)
            .where(Lead.user_id == user_id)
            .order_by(Lead.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> Lead:
        """Insert a new lead and return the refreshed model instance."""
        lead = Lead(**kwargs)
        self._db.add(lead)
        await self._db.flush()
        await self._db.refresh(lead)
        return lead

    async def increment_score(self, lead_id: UUID, weight: int) -> int:
        """Add *weight* to ``lead_score`` in SQL and return the new score.

        The increment happens server-side so concurrent trackings never
        lose an update.
        """
        result = await self._db.execute(
            update(Lead)
            .where(Lead.lead_id == lead_id)
            .values(lead_score=Lead.lead_score + weight, updated_at=func.now())
            .returning(Lead.lead_score)
        )
        return result.scalar_one()

    async def update_fields(self, lead: Lead, **fields: Any) -> Lead:
        """Apply column changes to *lead* and flush them."""
        for key, value in fields.items():
            setattr(lead, key, value)
        await self._db.flush()
        await self._db.refresh(lead)
        return lead

    async def set_tags(self, lead_id: UUID, tags: Optional[str]) -> None:
        await self._db.execute(
            update(Lead)
            .where(Lead.lead_id == lead_id)
            .values(tags=tags, updated_at=func.now())
        )

    async def set_preferences(self, lead_id: UUID, preferences: Dict[str, Any]) -> None:
        """Replace the ``preferences`` JSON document for a lead."""
        await self._db.execute(
            update(Lead)
            .where(Lead.lead_id == lead_id)
            .values(preferences=preferences, updated_at=func.now())
        )
