from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text

from app.core.constants import INTERACTION_TYPE_CHECK_CLAUSE


class LeadInteraction(Base):
    """Immutable engagement event recorded against a lead.

    ``score_weight`` is the weight applied to the lead's score when the
    row was written.  The JSON payload is exposed as ``details`` because
    ``metadata`` is reserved on declarative classes; the column itself is
    still named ``metadata``.
    """

    __tablename__ = "lead_interactions"
    interaction_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    lead_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leads.lead_id", ondelete="CASCADE"),
        nullable=False,
    )
    type = Column(String(30), nullable=False)
    score_weight = Column(Integer, nullable=False, server_default=text("0"))
    details = Column(
        "metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    occurred_at = Column(DateTime(timezone=True), server_default=func.now())

    lead = relationship("Lead", back_populates="interactions")

    __table_args__ = (
        CheckConstraint(INTERACTION_TYPE_CHECK_CLAUSE, name="ck_interaction_type"),
        Index("ix_lead_interactions_lead_occurred", "lead_id", "occurred_at"),
    )
