import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.background import BackgroundJobRunner
from app.core.config import settings
from app.core.constants import DEFAULT_DELAY_UNIT, DELAY_UNIT_SECONDS
from app.core.exceptions import (
    AgentNotFoundError,
    InvalidWorkflowDefinitionError,
    LeadNotFoundError,
    WorkflowNotFoundError,
)
from app.models.lead import Lead
from app.models.workflow import WorkflowEnrollment
from app.repositories.agent_lead_repository import AgentLeadRepository
from app.repositories.agent_repository import AgentRepository
from app.repositories.lead_repository import LeadRepository
from app.repositories.template_repository import TemplateRepository
from app.repositories.workflow_repository import (
    EnrollmentRepository,
    WorkflowLogRepository,
    WorkflowRepository,
)
from app.schemas.workflow import (
    AssignStep,
    ConditionStep,
    DelayStep,
    EmailStep,
    TagStep,
)
from app.services.agent_assignment import AgentAssignmentEngine
from app.services.email_personalization import personalize, prepare_tracked_email
from app.services.email_service import EmailService
from app.services.workflow_tree import (
    branch_entry_id,
    find_next_step_id,
    find_step,
    first_step_id,
    parse_steps,
)

logger = logging.getLogger(__name__)

_LEAD_FIELDS = frozenset(c.key for c in Lead.__table__.columns)
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_MISSING = object()


class StepOutcome(NamedTuple):
    next_step_id: Optional[str]
    delay_seconds: int = 0
    result: Dict[str, Any] = {}


def _lead_field(lead: Lead, field: str) -> Any:
    """Read *field* (camelCase or snake_case) from a lead.

    Unknown columns fall back to the lead's ``preferences`` document;
    anything else is ``_MISSING``.
    """
    name = _CAMEL_BOUNDARY.sub("_", field).lower()
    if name in _LEAD_FIELDS:
        return getattr(lead, name)
    preferences = lead.preferences or {}
    if field in preferences:
        return preferences[field]
    return _MISSING


def evaluate_condition(actual: Any, operator: str, expected: Any) -> bool:
    """Apply a CONDITION operator; a missing field never matches."""
    if actual is _MISSING:
        return False
    if operator == "not_empty":
        return bool(actual)
    if actual is None:
        return False
    if operator == "equals":
        if isinstance(actual, (int, float, Decimal)) and not isinstance(actual, bool):
            return _numbers_equal(actual, expected)
        return str(actual).lower() == str(expected).lower()
    if operator == "contains":
        return str(expected).lower() in str(actual).lower()
    if operator == "greater_than":
        try:
            return float(actual) > float(expected)
        except (TypeError, ValueError):
            return False
    logger.warning("Unknown condition operator %r; treated as not matched", operator)
    return False


def _numbers_equal(actual: Any, expected: Any) -> bool:
    # Numeric columns come back as Decimal("500000.00"); compare by value.
    try:
        return Decimal(str(actual)) == Decimal(str(expected).strip())
    except (InvalidOperation, ValueError):
        return False


def split_tags(tags: Optional[str]) -> List[str]:
    return [t.strip() for t in (tags or "").split(",") if t.strip()]


def delay_seconds(step: DelayStep) -> int:
    multiplier = DELAY_UNIT_SECONDS.get(step.unit, DELAY_UNIT_SECONDS[DEFAULT_DELAY_UNIT])
    return int(step.duration * multiplier)


class WorkflowEngine:
    """Interpreter for marketing workflows.

    Each call to :meth:`run_enrollment` executes exactly one step of one
    enrollment: it claims the row, runs the step, appends a
    ``WorkflowLog`` and moves the enrollment to the next step.  The
    caller owns the transaction, so a failing step leaves no log row and
    no progress behind and is retried on the next tick.
    """

    def __init__(
        self,
        email_service: Optional[EmailService] = None,
        assignment_engine: Optional[AgentAssignmentEngine] = None,
        public_base_url: Optional[str] = None,
    ) -> None:
        self._email = email_service or EmailService()
        self._assignment = assignment_engine or AgentAssignmentEngine()
        self._base_url = public_base_url or settings.PUBLIC_BASE_URL

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    async def enroll(
        self,
        workflow_id: UUID,
        lead_id: UUID,
        workflow_repo: WorkflowRepository,
        lead_repo: LeadRepository,
        enrollment_repo: EnrollmentRepository,
        tenant_id: Optional[UUID] = None,
    ) -> WorkflowEnrollment:
        """Enroll a lead, or return its existing enrollment.

        Raises:
            WorkflowNotFoundError: If the workflow is missing, paused or
                belongs to another tenant.
            LeadNotFoundError: If the lead is missing or in another tenant.
        """
        workflow = await workflow_repo.get_by_id(workflow_id)
        if (
            workflow is None
            or workflow.status != "ACTIVE"
            or (tenant_id is not None and workflow.tenant_id != tenant_id)
        ):
            raise WorkflowNotFoundError()

        lead = await lead_repo.get_by_id(lead_id)
        if lead is None or lead.tenant_id != workflow.tenant_id:
            raise LeadNotFoundError()

        steps = parse_steps(workflow.steps)
        return await enrollment_repo.insert_if_absent(
            workflow_id=workflow_id,
            lead_id=lead_id,
            current_step=first_step_id(steps),
            next_action_at=datetime.now(timezone.utc),
        )

    async def enroll_on_trigger(
        self,
        tenant_id: UUID,
        lead_id: UUID,
        trigger_type: str,
        workflow_repo: WorkflowRepository,
        lead_repo: LeadRepository,
        enrollment_repo: EnrollmentRepository,
    ) -> int:
        """Enroll a lead into every ACTIVE workflow listening for *trigger_type*."""
        workflows = await workflow_repo.list_active_for_trigger(tenant_id, trigger_type)
        enrolled = 0
        for workflow in workflows:
            try:
                await self.enroll(
                    workflow.workflow_id,
                    lead_id,
                    workflow_repo,
                    lead_repo,
                    enrollment_repo,
                    tenant_id=tenant_id,
                )
                enrolled += 1
            except (WorkflowNotFoundError, LeadNotFoundError, InvalidWorkflowDefinitionError):
                logger.warning(
                    "Skipped auto-enrollment of lead %s into workflow %s",
                    lead_id,
                    workflow.workflow_id,
                    exc_info=True,
                )
        return enrolled

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def process_enrollment(
        self, session: AsyncSession, *, enrollment_id: UUID, now: datetime
    ) -> bool:
        """Job entry point for ``BackgroundJobRunner``."""
        return await self.run_enrollment(
            enrollment_id,
            now,
            enrollment_repo=EnrollmentRepository(session),
            log_repo=WorkflowLogRepository(session),
            lead_repo=LeadRepository(session),
            template_repo=TemplateRepository(session),
            agent_repo=AgentRepository(session),
            agent_lead_repo=AgentLeadRepository(session),
        )

    async def run_enrollment(
        self,
        enrollment_id: UUID,
        now: datetime,
        enrollment_repo: EnrollmentRepository,
        log_repo: WorkflowLogRepository,
        lead_repo: LeadRepository,
        template_repo: TemplateRepository,
        agent_repo: AgentRepository,
        agent_lead_repo: AgentLeadRepository,
    ) -> bool:
        """Execute the current step of one enrollment.

        Returns ``False`` when the enrollment could not be claimed
        (another tick holds it, or it is no longer due).
        """
        enrollment = await enrollment_repo.claim_due(enrollment_id, now)
        if enrollment is None:
            return False

        steps = parse_steps(enrollment.workflow.steps)
        step = find_step(steps, enrollment.current_step) if enrollment.current_step else None
        if step is None:
            logger.info(
                "Enrollment %s has no step %r; completing",
                enrollment_id,
                enrollment.current_step,
            )
            await enrollment_repo.advance(enrollment, None, None)
            return True

        lead = await lead_repo.get_by_id(enrollment.lead_id)
        if lead is None:
            await enrollment_repo.advance(enrollment, None, None)
            return True

        outcome = await self.execute_step(
            step,
            steps,
            enrollment,
            lead,
            lead_repo=lead_repo,
            template_repo=template_repo,
            agent_repo=agent_repo,
            agent_lead_repo=agent_lead_repo,
        )

        await log_repo.create(
            enrollment_id=enrollment.enrollment_id,
            step_id=step.id,
            action_type=step.type,
            status="SUCCESS",
            result=outcome.result,
        )
        advanced = await enrollment_repo.advance(
            enrollment,
            outcome.next_step_id,
            now + timedelta(seconds=outcome.delay_seconds),
        )
        if not advanced:
            raise RuntimeError(f"Enrollment {enrollment_id} changed during step {step.id}")

        logger.debug(
            "Enrollment %s: %s %s → %s",
            enrollment_id,
            step.type,
            step.id,
            outcome.next_step_id or "COMPLETED",
        )
        return True

    async def execute_step(
        self,
        step: Any,
        steps: List[Any],
        enrollment: WorkflowEnrollment,
        lead: Lead,
        lead_repo: LeadRepository,
        template_repo: TemplateRepository,
        agent_repo: AgentRepository,
        agent_lead_repo: AgentLeadRepository,
    ) -> StepOutcome:
        """Run one step's side effect and resolve what comes next."""
        if isinstance(step, EmailStep):
            result = await self._send_email(step, enrollment, lead, template_repo)
            return StepOutcome(find_next_step_id(steps, step.id), 0, result)

        if isinstance(step, DelayStep):
            seconds = delay_seconds(step)
            return StepOutcome(
                find_next_step_id(steps, step.id), seconds, {"delaySeconds": seconds}
            )

        if isinstance(step, ConditionStep):
            matched = evaluate_condition(
                _lead_field(lead, step.field), step.operator, step.value
            )
            return StepOutcome(branch_entry_id(steps, step, matched), 0, {"matched": matched})

        if isinstance(step, TagStep):
            tags = await self._apply_tag(step, lead, lead_repo)
            return StepOutcome(find_next_step_id(steps, step.id), 0, {"tags": tags})

        if isinstance(step, AssignStep):
            result = await self._assign(step, lead, agent_repo, agent_lead_repo)
            return StepOutcome(find_next_step_id(steps, step.id), 0, result)

        # START carries no action.
        return StepOutcome(find_next_step_id(steps, step.id), 0, {})

    # ------------------------------------------------------------------
    # Step actions
    # ------------------------------------------------------------------

    async def _send_email(
        self,
        step: EmailStep,
        enrollment: WorkflowEnrollment,
        lead: Lead,
        template_repo: TemplateRepository,
    ) -> Dict[str, Any]:
        if not lead.email:
            logger.info("Lead %s has no email; EMAIL step %s skipped", lead.lead_id, step.id)
            return {"sent": False, "reason": "no_email"}

        template = None
        if step.template_id:
            try:
                template = await template_repo.get_in_tenant(
                    UUID(step.template_id), enrollment.workflow.tenant_id
                )
            except ValueError:
                template = None
        if template is None:
            logger.warning(
                "Template %r for EMAIL step %s not found; skipped",
                step.template_id,
                step.id,
            )
            return {"sent": False, "reason": "template_not_found"}

        subject = personalize(
            step.subject or template.subject or enrollment.workflow.name, lead.name
        )
        html = prepare_tracked_email(
            template.content,
            lead.name,
            self._base_url,
            {"w": enrollment.workflow_id, "l": lead.lead_id},
        )
        sent = await self._email.send_template_email(lead.email, subject, html)
        return {"sent": sent, "to": lead.email, "templateId": step.template_id}

    async def _apply_tag(
        self, step: TagStep, lead: Lead, lead_repo: LeadRepository
    ) -> List[str]:
        tags = split_tags(lead.tags)
        tag = step.tag.strip()
        if tag:
            if step.action == "remove":
                tags = [t for t in tags if t != tag]
            elif tag not in tags:
                tags.append(tag)
        await lead_repo.set_tags(lead.lead_id, ",".join(tags) or None)
        return tags

    async def _assign(
        self,
        step: AssignStep,
        lead: Lead,
        agent_repo: AgentRepository,
        agent_lead_repo: AgentLeadRepository,
    ) -> Dict[str, Any]:
        if step.agent_id == "auto":
            agent = await self._assignment.assign_round_robin(
                lead.tenant_id, lead.lead_id, agent_repo, agent_lead_repo
            )
            return {"mode": "auto", "agentId": str(agent.agent_id) if agent else None}

        try:
            await self._assignment.reassign(
                lead.lead_id,
                UUID(step.agent_id),
                agent_repo,
                agent_lead_repo,
                tenant_id=lead.tenant_id,
            )
        except AgentNotFoundError:
            logger.warning("ASSIGN step %s: agent %s not found", step.id, step.agent_id)
            return {"mode": "direct", "agentId": step.agent_id, "assigned": False}
        return {"mode": "direct", "agentId": step.agent_id, "assigned": True}


# ----------------------------------------------------------------------
# Tick
# ----------------------------------------------------------------------


async def process_workflows(
    session_factory: Callable[..., AsyncSession],
    engine: Optional[WorkflowEngine] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """One tick: advance every due ACTIVE enrollment by one step.

    Each enrollment runs in its own session through
    ``BackgroundJobRunner``, so one failure never blocks the others.

    Parameters:
        session_factory: An async context-manager callable that yields
            an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).
    """
    engine = engine or WorkflowEngine()
    now = now or datetime.now(timezone.utc)

    async with session_factory() as session:
        due_ids = await EnrollmentRepository(session).list_due_ids(now)

    runner = BackgroundJobRunner(session_factory)
    processed = failed = 0
    for enrollment_id in due_ids:
        ok = await runner.run(
            "workflow_step",
            engine.process_enrollment,
            enrollment_id=enrollment_id,
            now=now,
        )
        if ok:
            processed += 1
        else:
            failed += 1

    if due_ids:
        logger.info(
            "Workflow tick: %d due, %d processed, %d failed",
            len(due_ids),
            processed,
            failed,
        )
    return {"due": len(due_ids), "processed": processed, "failed": failed}


async def start_workflow_loop(
    session_factory: Callable[..., AsyncSession],
    interval_seconds: Optional[int] = None,
) -> None:
    """Infinite loop that runs a workflow tick on a fixed interval."""
    interval = interval_seconds or settings.WORKFLOW_TICK_INTERVAL_SECONDS
    logger.info("Workflow scheduler started (interval=%ds)", interval)
    engine = WorkflowEngine()
    while True:
        try:
            await process_workflows(session_factory, engine)
        except Exception:
            logger.error("Workflow tick failed", exc_info=True)
        await asyncio.sleep(interval)
