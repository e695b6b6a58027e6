from fastapi import APIRouter, BackgroundTasks, Depends
from uuid import UUID

from app.core.exceptions import EmailDeliveryError, InvalidLeadDataError
from app.models.lead import Lead
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.agent_repository import AgentRepository
from app.repositories.interaction_repository import InteractionRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.property_repository import PropertyRepository
from app.schemas.common import InteractionType
from app.schemas.interaction import InteractionListResponse, InteractionOut
from app.schemas.lead import (
    AssignmentOut,
    LeadAgentUpdate,
    LeadAgentUpdateResponse,
    LeadCaptureResponse,
    LeadCreate,
    LeadOut,
    LeadResponse,
    LeadStatusUpdate,
)
from app.schemas.recommendation import (
    RecommendationEmailResponse,
    RecommendationResponse,
)
from app.services.agent_assignment import AgentAssignmentEngine
from app.services.email_service import EmailService
from app.services.interaction_tracker import InteractionTracker
from app.services.lead_capture_service import LeadCaptureService
from app.services.property_match_service import PropertyMatchService
from app.api.deps import (
    get_agent_lead_repo,
    get_agent_repo,
    get_assignment_engine,
    get_email_service,
    get_interaction_repo,
    get_interaction_tracker,
    get_lead_capture_service,
    get_lead_repo,
    get_property_match_service,
    get_property_repo,
    get_tenant_id,
    get_tenant_lead,
)

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.post("", response_model=LeadCaptureResponse, status_code=201)
async def create_lead(
    request_body: LeadCreate,
    background_tasks: BackgroundTasks,
    tenant_id: UUID = Depends(get_tenant_id),
    service: LeadCaptureService = Depends(get_lead_capture_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> LeadCaptureResponse:
    """Staff lead entry; deduplicated exactly like public capture."""
    result = await service.capture_lead(
        tenant_id=tenant_id,
        lead_data=request_body.model_dump(exclude={"agent_id"}),
        lead_repo=lead_repo,
        channel="staff",
        agent_id=request_body.agent_id,
        background_tasks=background_tasks,
    )
    return LeadCaptureResponse(
        created=result["created"], lead=LeadOut.model_validate(result["lead"])
    )


@router.patch("/{lead_id}/status", response_model=LeadResponse)
async def update_lead_status(
    update_data: LeadStatusUpdate,
    lead: Lead = Depends(get_tenant_lead),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> LeadResponse:
    """Move a lead to any lifecycle status, optionally appending a note."""
    changes = {"status": update_data.status.value}
    if update_data.notes:
        changes["notes"] = (
            f"{lead.notes}\n{update_data.notes}" if lead.notes else update_data.notes
        )
    lead = await lead_repo.update_fields(lead, **changes)
    await lead_repo.commit()
    return LeadResponse(lead=LeadOut.model_validate(lead))


@router.post("/{lead_id}/agent", response_model=LeadAgentUpdateResponse)
async def reassign_lead(
    update_data: LeadAgentUpdate,
    lead: Lead = Depends(get_tenant_lead),
    engine: AgentAssignmentEngine = Depends(get_assignment_engine),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    agent_lead_repo: AgentLeadRepository = Depends(get_agent_lead_repo),
) -> LeadAgentUpdateResponse:
    """Reassign the lead to ``agent_id``, or unassign it when null."""
    result = await engine.reassign(
        lead.lead_id,
        update_data.agent_id,
        agent_repo,
        agent_lead_repo,
        tenant_id=lead.tenant_id,
    )
    await agent_lead_repo.commit()
    assignment = result["assignment"]
    return LeadAgentUpdateResponse(
        lead_id=lead.lead_id,
        assignment=AssignmentOut.model_validate(assignment) if assignment else None,
        deactivated=result["deactivated"],
    )


@router.get("/{lead_id}/interactions", response_model=InteractionListResponse)
async def list_lead_interactions(
    lead: Lead = Depends(get_tenant_lead),
    interaction_repo: InteractionRepository = Depends(get_interaction_repo),
) -> InteractionListResponse:
    """Return the lead's 50 most recent interactions."""
    interactions = await interaction_repo.list_for_lead(lead.lead_id)
    return InteractionListResponse(
        interactions=[InteractionOut.model_validate(i) for i in interactions]
    )


@router.get("/{lead_id}/recommendations", response_model=RecommendationResponse)
async def get_recommendations(
    lead: Lead = Depends(get_tenant_lead),
    service: PropertyMatchService = Depends(get_property_match_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    interaction_repo: InteractionRepository = Depends(get_interaction_repo),
    property_repo: PropertyRepository = Depends(get_property_repo),
) -> RecommendationResponse:
    """Refresh the lead's interpreted preferences, then rank properties."""
    lead_id = lead.lead_id
    tenant_id = lead.tenant_id
    await service.update_lead_preferences(lead_id, lead_repo, interaction_repo, property_repo)
    await lead_repo.commit()
    recommendations = await service.get_recommendations(
        lead_id, tenant_id, lead_repo, property_repo
    )
    return RecommendationResponse(lead_id=lead_id, recommendations=recommendations)


@router.post(
    "/{lead_id}/recommendations/email", response_model=RecommendationEmailResponse
)
async def email_recommendations(
    lead: Lead = Depends(get_tenant_lead),
    service: PropertyMatchService = Depends(get_property_match_service),
    email_service: EmailService = Depends(get_email_service),
    tracker: InteractionTracker = Depends(get_interaction_tracker),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    interaction_repo: InteractionRepository = Depends(get_interaction_repo),
    property_repo: PropertyRepository = Depends(get_property_repo),
) -> RecommendationEmailResponse:
    """Email the lead their top three matches and log an EMAIL_SENT."""
    lead_id, email, name = lead.lead_id, lead.email, lead.name
    if not email:
        raise EmailDeliveryError("Lead has no email address")

    recommendations = await service.get_recommendations(
        lead_id, lead.tenant_id, lead_repo, property_repo, limit=3
    )
    if not recommendations:
        raise InvalidLeadDataError("No recommendations found for this lead")

    sent = await email_service.send_property_recommendation_email(
        email, name, recommendations
    )
    if not sent:
        raise EmailDeliveryError()

    await tracker.track(
        InteractionType.EMAIL_SENT.value,
        lead_repo,
        interaction_repo,
        lead_id=lead_id,
        metadata={"type": "recommendation", "propertyCount": len(recommendations)},
    )
    await lead_repo.commit()
    return RecommendationEmailResponse(
        lead_id=lead_id, property_count=len(recommendations)
    )
