from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text


class MarketingWorkflow(Base):
    """Automation definition: a trigger plus a tree of typed steps.

    ``steps`` is stored as JSON in the camelCase shape the editor
    produces and parsed into ``app.schemas.workflow`` step models by the
    engine.
    """

    __tablename__ = "marketing_workflows"
    workflow_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), nullable=False)
    name = Column(String(200), nullable=False)
    trigger = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    steps = Column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
    status = Column(String(10), nullable=False, server_default="ACTIVE")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    enrollments = relationship(
        "WorkflowEnrollment", back_populates="workflow", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("status IN ('ACTIVE', 'PAUSED')", name="ck_workflow_status"),
        Index("ix_marketing_workflows_tenant_status", "tenant_id", "status"),
    )


class WorkflowEnrollment(Base):
    """One lead's run through one workflow.

    ``next_action_at`` gates when a tick may advance the run; ``version``
    is bumped on every step transition.
    """

    __tablename__ = "workflow_enrollments"
    enrollment_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    workflow_id = Column(
        UUID(as_uuid=True),
        ForeignKey("marketing_workflows.workflow_id", ondelete="CASCADE"),
        nullable=False,
    )
    lead_id = Column(
        UUID(as_uuid=True),
        ForeignKey("leads.lead_id", ondelete="CASCADE"),
        nullable=False,
    )
    current_step = Column(String(100))
    status = Column(String(10), nullable=False, server_default="ACTIVE")
    next_action_at = Column(DateTime(timezone=True))
    version = Column(Integer, nullable=False, server_default=text("0"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    workflow = relationship("MarketingWorkflow", back_populates="enrollments")
    lead = relationship("Lead", back_populates="enrollments")
    logs = relationship(
        "WorkflowLog", back_populates="enrollment", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("workflow_id", "lead_id", name="uq_enrollment_workflow_lead"),
        CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED')", name="ck_enrollment_status"
        ),
        Index("ix_workflow_enrollments_due", "status", "next_action_at"),
    )


class WorkflowLog(Base):
    """Append-only audit row written for every executed step."""

    __tablename__ = "workflow_logs"
    log_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    enrollment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("workflow_enrollments.enrollment_id", ondelete="CASCADE"),
        nullable=False,
    )
    step_id = Column(String(100), nullable=False)
    action_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    result = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    occurred_at = Column(DateTime(timezone=True), server_default=func.now())

    enrollment = relationship("WorkflowEnrollment", back_populates="logs")
