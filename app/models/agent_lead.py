from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text


class AgentLead(Base):
    """Junction between an agent and a lead, kept as assignment history.

    Reassignment flips existing rows to ``INACTIVE`` instead of deleting
    them.  A partial unique index guarantees at most one ``ACTIVE`` row
    per lead.
    """

    __tablename__ = "agent_leads"
    agent_lead_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    agent_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agents.agent_id", ondelete="CASCADE"),
        nullable=False,
    )
    lead_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leads.lead_id", ondelete="CASCADE"),
        nullable=False,
    )
    is_primary = Column(Boolean, nullable=False, server_default=text("true"))
    status = Column(String(10), nullable=False, server_default="ACTIVE")
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())

    agent = relationship("Agent", back_populates="lead_links")
    lead = relationship("Lead", back_populates="agent_links")

    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="ck_agent_lead_status"),
        Index(
            "uq_agent_leads_one_active_per_lead",
            "lead_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_agent_leads_agent_id", "agent_id"),
    )
