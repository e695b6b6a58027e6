from sqlalchemy import Column, String, Integer, Numeric, DateTime, CheckConstraint, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text


class Agent(Base):
    """Staff member who works leads and earns commission on bookings.

    ``total_leads`` and ``last_lead_assigned_at`` are stamped by the
    round-robin and manual assignment paths; ``total_deals`` by the
    commission calculator.  ``commission_rate`` is a percentage.
    """

    __tablename__ = "agents"
    agent_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.user_id", ondelete="SET NULL")
    )
    specialization = Column(String(100))
    commission_rate = Column(Numeric(5, 2), nullable=False, server_default=text("2.5"))
    status = Column(String(20), nullable=False, server_default="ACTIVE")
    total_leads = Column(Integer, nullable=False, server_default=text("0"))
    total_deals = Column(Integer, nullable=False, server_default=text("0"))
    last_lead_assigned_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User")
    lead_links = relationship(
        "AgentLead", back_populates="agent", cascade="all, delete-orphan"
    )
    commissions = relationship(
        "Commission", back_populates="agent", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE', 'ON_LEAVE')", name="ck_agent_status"
        ),
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_agent_commission_rate",
        ),
    )
