from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select

from app.models.email_template import EmailTemplate
from app.repositories.base import BaseRepository


class TemplateRepository(BaseRepository):
    async def get_in_tenant(
        self, template_id: UUID, tenant_id: UUID
    ) -> Optional[EmailTemplate]:
        result = await self._db.execute(
            select(EmailTemplate).where(
                EmailTemplate.template_id == template_id,
                EmailTemplate.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def existing_ids_in_tenant(
        self, template_ids: Iterable[UUID], tenant_id: UUID
    ) -> List[UUID]:
        """Return which of *template_ids* exist in the tenant."""
        ids = list(template_ids)
        if not ids:
            return []
        result = await self._db.execute(
            select(EmailTemplate.template_id).where(
                EmailTemplate.template_id.in_(ids),
                EmailTemplate.tenant_id == tenant_id,
            )
        )
        return list(result.scalars().all())
