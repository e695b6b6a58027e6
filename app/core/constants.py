from typing import Dict, FrozenSet

from app.schemas.common import (
    BookingStatus,
    DelayUnit,
    InteractionType,
    LeadPriority,
    LeadSource,
    LeadStatus,
)

LEAD_STATUSES: FrozenSet[str] = frozenset(s.value for s in LeadStatus)
LEAD_PRIORITIES: FrozenSet[str] = frozenset(p.value for p in LeadPriority)
LEAD_SOURCES: FrozenSet[str] = frozenset(s.value for s in LeadSource)


def _check_clause(column: str, values: FrozenSet[str]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in sorted(values))})"


LEAD_STATUS_CHECK_CLAUSE: str = _check_clause("status", LEAD_STATUSES)
LEAD_PRIORITY_CHECK_CLAUSE: str = _check_clause("priority", LEAD_PRIORITIES)
LEAD_SOURCE_CHECK_CLAUSE: str = _check_clause("source", LEAD_SOURCES)
INTERACTION_TYPE_CHECK_CLAUSE: str = _check_clause(
    "type", frozenset(t.value for t in InteractionType)
)


# ---------------------------------------------------------------------------
# Interaction scoring
# ---------------------------------------------------------------------------

# Weight added to Lead.lead_score per tracked interaction.  Types that are
# absent score 0.
INTERACTION_SCORE_WEIGHTS: Dict[str, int] = {
    InteractionType.EMAIL_OPEN.value: 1,
    InteractionType.EMAIL_CLICK.value: 3,
    InteractionType.PROPERTY_VIEW.value: 5,
    InteractionType.FORM_SUBMIT.value: 20,
    InteractionType.CHAT_INIT.value: 10,
}

# Interaction types whose ``metadata.propertyId`` feeds preference inference
PREFERENCE_INTERACTION_TYPES: FrozenSet[str] = frozenset(
    {
        InteractionType.PROPERTY_VIEW.value,
        InteractionType.FORM_SUBMIT.value,
        InteractionType.CHAT_INIT.value,
        InteractionType.UNIT_VIEW.value,
    }
)
PREFERENCE_LOOKBACK: int = 20
BUDGET_HEADROOM: float = 1.2


# ---------------------------------------------------------------------------
# Property match scoring
# ---------------------------------------------------------------------------

MATCH_SCORE_WEIGHTS: Dict[str, int] = {
    "baseline": 10,
    "location": 40,
    "property_type": 30,
    "budget_fit": 20,
}
MATCH_SCORE_CAP: int = 100
# Extra candidates fetched before ranking
RECOMMENDATION_OVERFETCH: int = 5
# Units returned per recommended property
RECOMMENDATION_UNITS_PER_PROPERTY: int = 3


# ---------------------------------------------------------------------------
# Workflow engine
# ---------------------------------------------------------------------------

DELAY_UNIT_SECONDS: Dict[str, int] = {
    DelayUnit.minutes.value: 60,
    DelayUnit.hours.value: 3600,
    DelayUnit.days.value: 86400,
}
DEFAULT_DELAY_UNIT: str = DelayUnit.hours.value

NAME_PLACEHOLDER_FALLBACK: str = "Valued Client"
LEAD_CREATED_TRIGGER: str = "LEAD_CREATED"


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

COMMISSION_TRIGGER_STATUSES: FrozenSet[str] = frozenset(
    {BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value}
)
