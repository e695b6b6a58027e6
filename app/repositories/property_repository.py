"""Property repository – catalogue reads for the property matcher."""

from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import selectinload

from app.models.property import Property, Unit, UnitPricing
from app.repositories.base import BaseRepository


class PropertyRepository(BaseRepository):
    """Encapsulates queries against ``properties`` / ``units`` / ``unit_pricing``."""

    async def get_many_with_pricing(self, property_ids: Sequence[UUID]) -> List[Property]:
        """Load properties with units and their pricing rows."""
        if not property_ids:
            return []
        result = await self._db.execute(
            select(Property)
            .where(Property.property_id.in_(list(property_ids)))
            .options(selectinload(Property.units).selectinload(Unit.pricing))
        )
        return list(result.scalars().all())

    async def find_candidates(
        self,
        tenant_id: UUID,
        budget: Decimal,
        limit: int,
        cities: Optional[Sequence[str]] = None,
        types: Optional[Sequence[str]] = None,
    ) -> List[Property]:
        """Return ACTIVE properties with at least one ACTIVE unit priced ≤ budget.

        When *cities* or *types* are given the property must also match a
        city OR a type (case-insensitive).
        """
        affordable_unit = (
            select(Unit.unit_id)
            .join(UnitPricing, UnitPricing.unit_id == Unit.unit_id)
            .where(
                and_(
                    Unit.property_id == Property.property_id,
                    Unit.status == "ACTIVE",
                    UnitPricing.price <= budget,
                )
            )
            .correlate(Property)
            .exists()
        )

        query = select(Property).where(
            Property.tenant_id == tenant_id,
            Property.status == "ACTIVE",
            affordable_unit,
        )

        preference_clauses = []
        if cities:
            preference_clauses.append(
                func.lower(Property.city).in_([c.lower() for c in cities])
            )
        if types:
            preference_clauses.append(
                func.lower(Property.property_type).in_([t.lower() for t in types])
            )
        if preference_clauses:
            query = query.where(or_(*preference_clauses))

        result = await self._db.execute(
            query.options(selectinload(Property.units).selectinload(Unit.pricing))
            .order_by(Property.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
