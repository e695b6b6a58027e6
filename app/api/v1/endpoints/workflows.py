from typing import List

from fastapi import APIRouter, Depends
from uuid import UUID

from app.core.exceptions import TemplateNotFoundError, WorkflowNotFoundError
from app.repositories.lead_repository import LeadRepository
from app.repositories.template_repository import TemplateRepository
from app.repositories.workflow_repository import EnrollmentRepository, WorkflowRepository
from app.schemas.common import SuccessResponse
from app.schemas.workflow import (
    EnrollmentOut,
    EnrollmentWithLogsOut,
    EnrollRequest,
    WorkflowCreate,
    WorkflowLogOut,
    WorkflowOut,
    WorkflowStatusUpdate,
    WorkflowTickResponse,
    WorkflowUpdate,
)
from app.services.workflow_engine import WorkflowEngine, process_workflows
from app.services.workflow_tree import dump_steps, email_template_ids, ensure_unique_ids
from app.api.deps import (
    get_enrollment_repo,
    get_lead_repo,
    get_session_factory,
    get_template_repo,
    get_tenant_id,
    get_workflow_engine,
    get_workflow_repo,
)

router = APIRouter(prefix="/workflows", tags=["Workflows"])

# Logs shown per enrollment in the enrollment listing
_RECENT_LOGS = 5


class WorkflowListResponse(SuccessResponse):
    workflows: List[WorkflowOut]


class WorkflowResponse(SuccessResponse):
    workflow: WorkflowOut


class EnrollmentResponse(SuccessResponse):
    enrollment: EnrollmentOut


class EnrollmentListResponse(SuccessResponse):
    enrollments: List[EnrollmentWithLogsOut]


async def _get_workflow(
    workflow_id: UUID, tenant_id: UUID, workflow_repo: WorkflowRepository
):
    workflow = await workflow_repo.get_in_tenant(workflow_id, tenant_id)
    if workflow is None:
        raise WorkflowNotFoundError()
    return workflow


async def _check_templates(
    steps, tenant_id: UUID, template_repo: TemplateRepository
) -> None:
    """EMAIL steps may only reference the tenant's own templates."""
    wanted = email_template_ids(steps)
    if not wanted:
        return
    found = set(await template_repo.existing_ids_in_tenant(wanted, tenant_id))
    missing = [str(t) for t in wanted if t not in found]
    if missing:
        raise TemplateNotFoundError(f"Email template(s) not found: {', '.join(missing)}")


@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    tenant_id: UUID = Depends(get_tenant_id),
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
) -> WorkflowListResponse:
    workflows = await workflow_repo.list_for_tenant(tenant_id)
    return WorkflowListResponse(
        workflows=[WorkflowOut.model_validate(w) for w in workflows]
    )


@router.post("", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    request_body: WorkflowCreate,
    tenant_id: UUID = Depends(get_tenant_id),
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
    template_repo: TemplateRepository = Depends(get_template_repo),
) -> WorkflowResponse:
    """Create a workflow; the step tree must have unique ids throughout."""
    ensure_unique_ids(request_body.steps)
    await _check_templates(request_body.steps, tenant_id, template_repo)
    workflow = await workflow_repo.create(
        tenant_id=tenant_id,
        name=request_body.name,
        trigger=request_body.trigger.model_dump(),
        steps=dump_steps(request_body.steps),
        status=request_body.status.value,
    )
    await workflow_repo.commit()
    return WorkflowResponse(workflow=WorkflowOut.model_validate(workflow))


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: UUID,
    request_body: WorkflowUpdate,
    tenant_id: UUID = Depends(get_tenant_id),
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
    template_repo: TemplateRepository = Depends(get_template_repo),
) -> WorkflowResponse:
    workflow = await _get_workflow(workflow_id, tenant_id, workflow_repo)
    changes = {}
    if request_body.name is not None:
        changes["name"] = request_body.name
    if request_body.trigger is not None:
        changes["trigger"] = request_body.trigger.model_dump()
    if request_body.steps is not None:
        ensure_unique_ids(request_body.steps)
        await _check_templates(request_body.steps, tenant_id, template_repo)
        changes["steps"] = dump_steps(request_body.steps)
    workflow = await workflow_repo.update_fields(workflow, **changes)
    await workflow_repo.commit()
    return WorkflowResponse(workflow=WorkflowOut.model_validate(workflow))


@router.patch("/{workflow_id}/status", response_model=WorkflowResponse)
async def set_workflow_status(
    workflow_id: UUID,
    request_body: WorkflowStatusUpdate,
    tenant_id: UUID = Depends(get_tenant_id),
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
) -> WorkflowResponse:
    """Pause or reactivate a workflow.  Paused workflows accept no enrollments."""
    workflow = await _get_workflow(workflow_id, tenant_id, workflow_repo)
    workflow = await workflow_repo.update_fields(
        workflow, status=request_body.status.value
    )
    await workflow_repo.commit()
    return WorkflowResponse(workflow=WorkflowOut.model_validate(workflow))


@router.post("/run", response_model=WorkflowTickResponse)
async def run_workflows(
    engine: WorkflowEngine = Depends(get_workflow_engine),
    session_factory=Depends(get_session_factory),
) -> WorkflowTickResponse:
    """Run one tick: advance every due enrollment by one step.

    Meant to be called by an external scheduler; concurrent calls are
    safe.
    """
    result = await process_workflows(session_factory, engine)
    return WorkflowTickResponse(**result)


@router.post(
    "/{workflow_id}/enroll", response_model=EnrollmentResponse, status_code=201
)
async def enroll_lead(
    workflow_id: UUID,
    request_body: EnrollRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: WorkflowEngine = Depends(get_workflow_engine),
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
    lead_repo: LeadRepository = Depends(get_lead_repo),
    enrollment_repo: EnrollmentRepository = Depends(get_enrollment_repo),
) -> EnrollmentResponse:
    """Enroll a lead; re-enrolling returns the existing enrollment."""
    enrollment = await engine.enroll(
        workflow_id,
        request_body.lead_id,
        workflow_repo,
        lead_repo,
        enrollment_repo,
        tenant_id=tenant_id,
    )
    await enrollment_repo.commit()
    return EnrollmentResponse(enrollment=EnrollmentOut.model_validate(enrollment))


@router.get("/{workflow_id}/enrollments", response_model=EnrollmentListResponse)
async def list_enrollments(
    workflow_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    workflow_repo: WorkflowRepository = Depends(get_workflow_repo),
    enrollment_repo: EnrollmentRepository = Depends(get_enrollment_repo),
) -> EnrollmentListResponse:
    await _get_workflow(workflow_id, tenant_id, workflow_repo)
    enrollments = await enrollment_repo.list_for_workflow(workflow_id)

    items = []
    for enrollment in enrollments:
        logs = sorted(
            enrollment.logs,
            key=lambda log: log.occurred_at.timestamp() if log.occurred_at else 0,
            reverse=True,
        )[:_RECENT_LOGS]
        item = EnrollmentWithLogsOut.model_validate(enrollment)
        item.logs = [WorkflowLogOut.model_validate(log) for log in logs]
        items.append(item)
    return EnrollmentListResponse(enrollments=items)
