from fastapi import APIRouter, Depends
from uuid import UUID

from app.core.exceptions import AgentNotFoundError
from app.models.lead import Lead
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.agent_repository import AgentRepository
from app.repositories.commission_repository import CommissionRepository
from app.schemas.agent import (
    AgentOut,
    AssignmentResponse,
    CommissionListResponse,
    CommissionOut,
    RoundRobinResponse,
)
from app.schemas.lead import AssignmentOut
from app.services.agent_assignment import AgentAssignmentEngine
from app.api.deps import (
    get_agent_lead_repo,
    get_agent_repo,
    get_assignment_engine,
    get_commission_repo,
    get_tenant_id,
    get_tenant_lead,
)

router = APIRouter(prefix="/agents", tags=["Agents"])


@router.post("/round-robin/{lead_id}", response_model=RoundRobinResponse)
async def assign_round_robin(
    lead: Lead = Depends(get_tenant_lead),
    engine: AgentAssignmentEngine = Depends(get_assignment_engine),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    agent_lead_repo: AgentLeadRepository = Depends(get_agent_lead_repo),
) -> RoundRobinResponse:
    """Assign the lead to the least recently assigned active agent.

    ``agent`` is null when the tenant has no active agents.
    """
    agent = await engine.assign_round_robin(
        lead.tenant_id, lead.lead_id, agent_repo, agent_lead_repo
    )
    await agent_repo.commit()
    return RoundRobinResponse(
        lead_id=lead.lead_id,
        agent=AgentOut.model_validate(agent) if agent else None,
    )


@router.post(
    "/{agent_id}/leads/{lead_id}", response_model=AssignmentResponse, status_code=201
)
async def assign_lead_to_agent(
    agent_id: UUID,
    lead: Lead = Depends(get_tenant_lead),
    engine: AgentAssignmentEngine = Depends(get_assignment_engine),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    agent_lead_repo: AgentLeadRepository = Depends(get_agent_lead_repo),
) -> AssignmentResponse:
    """Manually assign a lead; repeating the same pair is a no-op."""
    assignment = await engine.assign_lead(
        agent_id,
        lead.lead_id,
        agent_repo,
        agent_lead_repo,
        tenant_id=lead.tenant_id,
    )
    await agent_repo.commit()
    return AssignmentResponse(assignment=AssignmentOut.model_validate(assignment))


@router.get("/{agent_id}/commissions", response_model=CommissionListResponse)
async def list_agent_commissions(
    agent_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    commission_repo: CommissionRepository = Depends(get_commission_repo),
) -> CommissionListResponse:
    agent = await agent_repo.get_by_id(agent_id)
    if agent is None or agent.tenant_id != tenant_id:
        raise AgentNotFoundError()
    commissions = await commission_repo.list_for_agent(agent_id)
    return CommissionListResponse(
        commissions=[CommissionOut.model_validate(c) for c in commissions]
    )
