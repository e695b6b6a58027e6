from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Table, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text


audience_group_leads = Table(
    "audience_group_leads",
    Base.metadata,
    Column(
        "group_id",
        UUID(as_uuid=True),
        ForeignKey("audience_groups.group_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "lead_id",
        UUID(as_uuid=True),
        ForeignKey("leads.lead_id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class AudienceGroup(Base):
    """Named set of leads a campaign is sent to."""

    __tablename__ = "audience_groups"
    group_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), nullable=False)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    leads = relationship("Lead", secondary=audience_group_leads)


class Campaign(Base):
    """One-shot email blast to an audience group.

    ``opened_count`` / ``clicked_count`` are bumped by the public
    tracking endpoints whenever a request carries ``c=<campaign_id>``.
    """

    __tablename__ = "campaigns"
    campaign_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), nullable=False)
    name = Column(String(200), nullable=False)
    group_id = Column(
        UUID(as_uuid=True), ForeignKey("audience_groups.group_id", ondelete="SET NULL")
    )
    template_id = Column(
        UUID(as_uuid=True),
        ForeignKey("email_templates.template_id", ondelete="SET NULL"),
    )
    status = Column(String(10), nullable=False, server_default="DRAFT")
    total_recipients = Column(Integer, nullable=False, server_default=text("0"))
    delivered_count = Column(Integer, nullable=False, server_default=text("0"))
    opened_count = Column(Integer, nullable=False, server_default=text("0"))
    clicked_count = Column(Integer, nullable=False, server_default=text("0"))
    sent_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    group = relationship("AudienceGroup")
    template = relationship("EmailTemplate")

    __table_args__ = (
        CheckConstraint("status IN ('DRAFT', 'SENT')", name="ck_campaign_status"),
    )
