"""API-layer dependency functions.

Re-exports all dependency factories from ``app.dependencies`` so that
endpoint modules only need to import from ``app.api.deps``.
"""

from app.dependencies import (
    # Caller identity
    Actor,
    get_current_actor,
    get_tenant_id,
    require_tenant,
    # Repository factories
    get_lead_repo,
    get_interaction_repo,
    get_agent_repo,
    get_agent_lead_repo,
    get_commission_repo,
    get_booking_repo,
    get_property_repo,
    get_campaign_repo,
    get_workflow_repo,
    get_enrollment_repo,
    get_template_repo,
    get_tenant_lead,
    # Service factories
    get_session_factory,
    get_job_runner,
    get_email_service,
    get_interaction_tracker,
    get_assignment_engine,
    get_lead_capture_service,
    get_property_match_service,
    get_workflow_engine,
    get_campaign_service,
    # Redis
    get_redis_client,
    get_cache_service,
)

__all__ = [
    "Actor",
    "get_current_actor",
    "get_tenant_id",
    "require_tenant",
    "get_lead_repo",
    "get_interaction_repo",
    "get_agent_repo",
    "get_agent_lead_repo",
    "get_commission_repo",
    "get_booking_repo",
    "get_property_repo",
    "get_campaign_repo",
    "get_workflow_repo",
    "get_enrollment_repo",
    "get_template_repo",
    "get_tenant_lead",
    "get_session_factory",
    "get_job_runner",
    "get_email_service",
    "get_interaction_tracker",
    "get_assignment_engine",
    "get_lead_capture_service",
    "get_property_match_service",
    "get_workflow_engine",
    "get_campaign_service",
    "get_redis_client",
    "get_cache_service",
]
