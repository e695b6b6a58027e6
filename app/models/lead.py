from sqlalchemy import (
    Column,
    String,
    Numeric,
    Integer,
    DateTime,
    Text,
    CheckConstraint,
    ForeignKey,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text

from app.core.constants import (
    LEAD_PRIORITY_CHECK_CLAUSE,
    LEAD_SOURCE_CHECK_CLAUSE,
    LEAD_STATUS_CHECK_CLAUSE,
)


class Lead(Base):
    """Prospective customer captured from a widget, a form, or staff entry.

    ``lead_score`` only ever grows: it is incremented in the same
    transaction that records a ``LeadInteraction``.  ``preferences`` holds
    both explicit fields and the interpreted ones written by the property
    matcher (``interpretedLocations``, ``interpretedTypes``,
    ``suggestedMaxBudget``, ``lastProcessedAt``).  Within a tenant a lead is
    deduplicated by email OR phone at capture time.
    """

    __tablename__ = "leads"
    lead_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), nullable=False)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.user_id", ondelete="SET NULL")
    )
    name = Column(String(200))
    email = Column(String(255))
    phone = Column(String(30))
    company = Column(String(200))
    message = Column(Text)
    status = Column(String(20), nullable=False, server_default="NEW")
    priority = Column(String(10), nullable=False, server_default="MEDIUM")
    source = Column(String(20), nullable=False, server_default="website")
    lead_score = Column(Integer, nullable=False, server_default=text("0"))
    budget = Column(Numeric(15, 2))
    preferences = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    tags = Column(Text)
    property_id = Column(
        UUID(as_uuid=True), ForeignKey("properties.property_id", ondelete="SET NULL")
    )
    unit_id = Column(
        UUID(as_uuid=True), ForeignKey("units.unit_id", ondelete="SET NULL")
    )
    notes = Column(Text)
    preferred_date = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User", back_populates="leads")
    interactions = relationship(
        "LeadInteraction", back_populates="lead", cascade="all, delete-orphan"
    )
    agent_links = relationship(
        "AgentLead", back_populates="lead", cascade="all, delete-orphan"
    )
    enrollments = relationship(
        "WorkflowEnrollment", back_populates="lead", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_leads_tenant_email", "tenant_id", "email"),
        Index("idx_leads_tenant_phone", "tenant_id", "phone"),
        CheckConstraint(
            "email IS NOT NULL OR phone IS NOT NULL", name="ck_lead_contact"
        ),
        CheckConstraint("lead_score >= 0", name="ck_lead_score_nonneg"),
        CheckConstraint(LEAD_STATUS_CHECK_CLAUSE, name="ck_lead_status"),
        CheckConstraint(LEAD_PRIORITY_CHECK_CLAUSE, name="ck_lead_priority"),
        CheckConstraint(LEAD_SOURCE_CHECK_CLAUSE, name="ck_lead_source"),
    )
