"""initial lead engine schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from app.core.constants import (
    INTERACTION_TYPE_CHECK_CLAUSE,
    LEAD_PRIORITY_CHECK_CLAUSE,
    LEAD_SOURCE_CHECK_CLAUSE,
    LEAD_STATUS_CHECK_CLAUSE,
)

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
    )


def _jsonb(name: str, default: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(),
        nullable=False,
        server_default=sa.text(f"'{default}'::jsonb"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid_pk("user_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True)),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(200)),
        _created_at(),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    op.create_table(
        "properties",
        _uuid_pk("property_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100)),
        sa.Column("property_type", sa.String(50)),
        sa.Column("status", sa.String(10), nullable=False, server_default="ACTIVE"),
        _created_at(),
    )
    op.create_index(
        "ix_properties_tenant_status", "properties", ["tenant_id", "status"]
    )

    op.create_table(
        "units",
        _uuid_pk("unit_id"),
        sa.Column(
            "property_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("properties.property_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("unit_code", sa.String(50)),
        sa.Column("unit_category", sa.String(50)),
        sa.Column("status", sa.String(10), nullable=False, server_default="ACTIVE"),
    )

    op.create_table(
        "unit_pricing",
        _uuid_pk("pricing_id"),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.unit_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("price", sa.Numeric(15, 2), nullable=False),
        sa.Column("plan", sa.String(50)),
    )

    op.create_table(
        "leads",
        _uuid_pk("lead_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
        ),
        sa.Column("name", sa.String(200)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        sa.Column("company", sa.String(200)),
        sa.Column("message", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False, server_default="NEW"),
        sa.Column("priority", sa.String(10), nullable=False, server_default="MEDIUM"),
        sa.Column("source", sa.String(20), nullable=False, server_default="website"),
        sa.Column("lead_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("budget", sa.Numeric(15, 2)),
        _jsonb("preferences", "{}"),
        sa.Column("tags", sa.Text()),
        sa.Column(
            "property_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("properties.property_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.unit_id", ondelete="SET NULL"),
        ),
        sa.Column("notes", sa.Text()),
        sa.Column("preferred_date", sa.DateTime(timezone=True)),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "email IS NOT NULL OR phone IS NOT NULL", name="ck_lead_contact"
        ),
        sa.CheckConstraint("lead_score >= 0", name="ck_lead_score_nonneg"),
        sa.CheckConstraint(LEAD_STATUS_CHECK_CLAUSE, name="ck_lead_status"),
        sa.CheckConstraint(LEAD_PRIORITY_CHECK_CLAUSE, name="ck_lead_priority"),
        sa.CheckConstraint(LEAD_SOURCE_CHECK_CLAUSE, name="ck_lead_source"),
    )
    op.create_index("idx_leads_tenant_email", "leads", ["tenant_id", "email"])
    op.create_index("idx_leads_tenant_phone", "leads", ["tenant_id", "phone"])

    op.create_table(
        "lead_interactions",
        _uuid_pk("interaction_id"),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.lead_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("score_weight", sa.Integer(), nullable=False, server_default="0"),
        _jsonb("metadata", "{}"),
        sa.Column(
            "occurred_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint(INTERACTION_TYPE_CHECK_CLAUSE, name="ck_interaction_type"),
    )
    op.create_index(
        "ix_lead_interactions_lead_occurred",
        "lead_interactions",
        ["lead_id", "occurred_at"],
    )

    op.create_table(
        "agents",
        _uuid_pk("agent_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
        ),
        sa.Column("specialization", sa.String(100)),
        sa.Column(
            "commission_rate", sa.Numeric(5, 2), nullable=False, server_default="2.5"
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("total_leads", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_deals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_lead_assigned_at", sa.DateTime(timezone=True)),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE', 'ON_LEAVE')", name="ck_agent_status"
        ),
        sa.CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_agent_commission_rate",
        ),
    )
    op.create_index("ix_agents_tenant_id", "agents", ["tenant_id"])

    op.create_table(
        "agent_leads",
        _uuid_pk("agent_lead_id"),
        sa.Column(
            "agent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.lead_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("status", sa.String(10), nullable=False, server_default="ACTIVE"),
        sa.Column(
            "assigned_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE')", name="ck_agent_lead_status"
        ),
    )
    # At most one ACTIVE link per lead
    op.create_index(
        "uq_agent_leads_one_active_per_lead",
        "agent_leads",
        ["lead_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )
    op.create_index("ix_agent_leads_agent_id", "agent_leads", ["agent_id"])

    op.create_table(
        "bookings",
        _uuid_pk("booking_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "agent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.unit_id", ondelete="SET NULL"),
        ),
        sa.Column("total_price", sa.Numeric(15, 2)),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("start_at", sa.DateTime(timezone=True)),
        _created_at(),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED')",
            name="ck_booking_status",
        ),
    )

    op.create_table(
        "commissions",
        _uuid_pk("commission_id"),
        sa.Column(
            "agent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("agents.agent_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "booking_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("bookings.booking_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("rate_snapshot", sa.Numeric(5, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        _created_at(),
        sa.UniqueConstraint("booking_id", name="uq_commission_booking"),
    )

    op.create_table(
        "email_templates",
        _uuid_pk("template_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("subject", sa.String(255)),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "audience_groups",
        _uuid_pk("group_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        _created_at(),
    )

    op.create_table(
        "audience_group_leads",
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("audience_groups.group_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.lead_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "campaigns",
        _uuid_pk("campaign_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("audience_groups.group_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "template_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("email_templates.template_id", ondelete="SET NULL"),
        ),
        sa.Column("status", sa.String(10), nullable=False, server_default="DRAFT"),
        sa.Column("total_recipients", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivered_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("opened_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("clicked_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("status IN ('DRAFT', 'SENT')", name="ck_campaign_status"),
    )

    op.create_table(
        "marketing_workflows",
        _uuid_pk("workflow_id"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        _jsonb("trigger", "{}"),
        _jsonb("steps", "[]"),
        sa.Column("status", sa.String(10), nullable=False, server_default="ACTIVE"),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("status IN ('ACTIVE', 'PAUSED')", name="ck_workflow_status"),
    )
    op.create_index(
        "ix_marketing_workflows_tenant_status",
        "marketing_workflows",
        ["tenant_id", "status"],
    )

    op.create_table(
        "workflow_enrollments",
        _uuid_pk("enrollment_id"),
        sa.Column(
            "workflow_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("marketing_workflows.workflow_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.lead_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("current_step", sa.String(100)),
        sa.Column("status", sa.String(10), nullable=False, server_default="ACTIVE"),
        sa.Column("next_action_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint(
            "workflow_id", "lead_id", name="uq_enrollment_workflow_lead"
        ),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED')", name="ck_enrollment_status"
        ),
    )
    op.create_index(
        "ix_workflow_enrollments_due",
        "workflow_enrollments",
        ["status", "next_action_at"],
    )

    op.create_table(
        "workflow_logs",
        _uuid_pk("log_id"),
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("workflow_enrollments.enrollment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step_id", sa.String(100), nullable=False),
        sa.Column("action_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        _jsonb("result", "{}"),
        sa.Column(
            "occurred_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
    )


def downgrade() -> None:
    op.drop_table("workflow_logs")
    op.drop_index("ix_workflow_enrollments_due", table_name="workflow_enrollments")
    op.drop_table("workflow_enrollments")
    op.drop_index(
        "ix_marketing_workflows_tenant_status", table_name="marketing_workflows"
    )
    op.drop_table("marketing_workflows")
    op.drop_table("campaigns")
    op.drop_table("audience_group_leads")
    op.drop_table("audience_groups")
    op.drop_table("email_templates")
    op.drop_table("commissions")
    op.drop_table("bookings")
    op.drop_index("ix_agent_leads_agent_id", table_name="agent_leads")
    op.drop_index("uq_agent_leads_one_active_per_lead", table_name="agent_leads")
    op.drop_table("agent_leads")
    op.drop_index("ix_agents_tenant_id", table_name="agents")
    op.drop_table("agents")
    op.drop_index("ix_lead_interactions_lead_occurred", table_name="lead_interactions")
    op.drop_table("lead_interactions")
    op.drop_index("idx_leads_tenant_phone", table_name="leads")
    op.drop_index("idx_leads_tenant_email", table_name="leads")
    op.drop_table("leads")
    op.drop_table("unit_pricing")
    op.drop_table("units")
    op.drop_index("ix_properties_tenant_status", table_name="properties")
    op.drop_table("properties")
    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_table("users")
