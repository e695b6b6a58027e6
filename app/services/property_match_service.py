"""Property recommendations driven by a lead's observed behaviour.

Two steps, run in this order by the recommendations endpoint:

1. :meth:`PropertyMatchService.update_lead_preferences` looks at the
   properties the lead recently engaged with and writes the
   *interpreted* preference fields (``interpretedLocations``,
   ``interpretedTypes``, ``suggestedMaxBudget``, ``lastProcessedAt``)
   into ``Lead.preferences``.
2. :meth:`PropertyMatchService.get_recommendations` ranks affordable
   ACTIVE properties against those preferences with a fixed additive
   score (see ``MATCH_SCORE_WEIGHTS``).

Ranked results are cached in Redis per lead for ``REDIS_CACHE_TTL``
seconds and invalidated whenever the interpreted preferences change.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import (
    BUDGET_HEADROOM,
    MATCH_SCORE_CAP,
    MATCH_SCORE_WEIGHTS,
    PREFERENCE_INTERACTION_TYPES,
    PREFERENCE_LOOKBACK,
    RECOMMENDATION_OVERFETCH,
    RECOMMENDATION_UNITS_PER_PROPERTY,
)
from app.core.exceptions import LeadNotFoundError
from app.models.lead import Lead
from app.models.property import Property
from app.repositories.interaction_repository import InteractionRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.property_repository import PropertyRepository

logger = logging.getLogger(__name__)

_INTERPRETED_KEYS = ("interpretedLocations", "interpretedTypes", "suggestedMaxBudget")


def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def _lowered(values: Optional[Iterable[Any]]) -> set:
    return {str(v).lower() for v in (values or []) if v}


def effective_budget(lead: Lead, preferences: Dict[str, Any]) -> float:
    """Explicit budget if positive, else the inferred ceiling, else the default."""
    if lead.budget is not None and float(lead.budget) > 0:
        return float(lead.budget)
    suggested = preferences.get("suggestedMaxBudget")
    if suggested:
        return float(suggested)
    return float(settings.DEFAULT_RECOMMENDATION_BUDGET)


def unit_listing(prop: Property) -> List[Dict[str, Any]]:
    """ACTIVE units of *prop* with their cheapest price, cheapest first."""
    units = []
    for unit in prop.units:
        if unit.status != "ACTIVE":
            continue
        prices = [float(p.price) for p in unit.pricing if p.price is not None]
        units.append(
            {
                "unit_id": unit.unit_id,
                "unit_code": unit.unit_code,
                "unit_category": unit.unit_category,
                "price": min(prices) if prices else 0.0,
            }
        )
    units.sort(key=lambda u: u["price"])
    return units[:RECOMMENDATION_UNITS_PER_PROPERTY]


def score_property(
    prop: Property,
    units: List[Dict[str, Any]],
    preferences: Dict[str, Any],
    budget: float,
) -> int:
    """Additive match score, capped at ``MATCH_SCORE_CAP``.

    Every candidate that reached this point already matched the
    candidate query, so it earns the baseline.
    """
    score = MATCH_SCORE_WEIGHTS["baseline"]
    if prop.city and prop.city.lower() in _lowered(preferences.get("interpretedLocations")):
        score += MATCH_SCORE_WEIGHTS["location"]
    if prop.property_type and prop.property_type.lower() in _lowered(
        preferences.get("interpretedTypes")
    ):
        score += MATCH_SCORE_WEIGHTS["property_type"]

    min_price = min((u["price"] for u in units), default=0.0)
    if 0 < min_price <= budget:
        score += MATCH_SCORE_WEIGHTS["budget_fit"]

    return min(score, MATCH_SCORE_CAP)


class PropertyMatchService:
    def __init__(self, cache: Optional[CacheService] = None) -> None:
        self._cache: CacheService = cache or CacheService()

    @staticmethod
    def _cache_key(lead_id: UUID, limit: int) -> str:
        return f"recommendations:{lead_id}:{limit}"

    async def invalidate(self, lead_id: UUID) -> None:
        for limit in {settings.RECOMMENDATION_LIMIT, 3}:
            await self._cache.delete(self._cache_key(lead_id, limit))

    # ------------------------------------------------------------------
    # Preference inference
    # ------------------------------------------------------------------

    async def update_lead_preferences(
        self,
        lead_id: UUID,
        lead_repo: LeadRepository,
        interaction_repo: InteractionRepository,
        property_repo: PropertyRepository,
    ) -> Optional[Dict[str, Any]]:
        """Infer preferences from recent property interactions.

        Returns the merged preferences, or ``None`` when the lead is
        missing or has no interaction carrying a ``propertyId``.
        Fields outside the interpreted set are preserved.
        """
        lead = await lead_repo.get_by_id(lead_id)
        if lead is None:
            return None

        interactions = await interaction_repo.recent_with_property(
            lead_id, PREFERENCE_INTERACTION_TYPES, PREFERENCE_LOOKBACK
        )
        property_ids = []
        for interaction in interactions:
            raw = (interaction.details or {}).get("propertyId")
            try:
                property_ids.append(UUID(str(raw)))
            except ValueError:
                logger.debug("Ignoring malformed propertyId %r on lead %s", raw, lead_id)
        if not property_ids:
            return None

        properties = await property_repo.get_many_with_pricing(list(dict.fromkeys(property_ids)))

        prices = [
            float(pricing.price)
            for prop in properties
            for unit in prop.units
            for pricing in unit.pricing
            if pricing.price is not None and float(pricing.price) > 0
        ]
        current = dict(lead.preferences or {})
        suggested = (
            sum(prices) / len(prices) * BUDGET_HEADROOM
            if prices
            else current.get("suggestedMaxBudget")
        )

        updated = {
            **current,
            "interpretedLocations": _distinct(p.city for p in properties),
            "interpretedTypes": _distinct(p.property_type for p in properties),
            "suggestedMaxBudget": suggested,
            "lastProcessedAt": datetime.now(timezone.utc).isoformat(),
        }
        await lead_repo.set_preferences(lead_id, updated)

        if any(current.get(k) != updated.get(k) for k in _INTERPRETED_KEYS):
            await self.invalidate(lead_id)
        return updated

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    async def get_recommendations(
        self,
        lead_id: UUID,
        tenant_id: Optional[UUID],
        lead_repo: LeadRepository,
        property_repo: PropertyRepository,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return up to *limit* properties ranked by match score.

        Raises:
            LeadNotFoundError: If the lead does not exist in the tenant.
        """
        limit = limit or settings.RECOMMENDATION_LIMIT
        lead = await lead_repo.get_by_id(lead_id)
        if lead is None or (tenant_id is not None and lead.tenant_id != tenant_id):
            raise LeadNotFoundError()

        cache_key = self._cache_key(lead_id, limit)
        cached = await self._cache.get_json(cache_key)
        if cached is not None:
            return cached

        preferences = dict(lead.preferences or {})
        budget = effective_budget(lead, preferences)
        cities = preferences.get("interpretedLocations") or []
        types = preferences.get("interpretedTypes") or []

        candidates = await property_repo.find_candidates(
            tenant_id=tenant_id or lead.tenant_id,
            budget=Decimal(str(budget)),
            limit=limit + RECOMMENDATION_OVERFETCH,
            cities=cities,
            types=types,
        )

        ranked = []
        for prop in candidates:
            units = unit_listing(prop)
            ranked.append(
                {
                    "property_id": prop.property_id,
                    "title": prop.title,
                    "city": prop.city,
                    "property_type": prop.property_type,
                    "units": units,
                    "match_score": score_property(prop, units, preferences, budget),
                }
            )
        ranked.sort(key=lambda r: r["match_score"], reverse=True)
        ranked = ranked[:limit]

        await self._cache.set_json(cache_key, ranked, ttl=settings.REDIS_CACHE_TTL)
        return ranked
