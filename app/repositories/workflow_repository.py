"""Workflow repositories – definitions, enrollments and step logs."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import selectinload

from app.models.workflow import MarketingWorkflow, WorkflowEnrollment, WorkflowLog
from app.repositories.base import BaseRepository


class WorkflowRepository(BaseRepository):
    """Encapsulates queries against ``marketing_workflows``."""

    async def get_by_id(self, workflow_id: UUID) -> Optional[MarketingWorkflow]:
        result = await self._db.execute(
            select(MarketingWorkflow).where(MarketingWorkflow.workflow_id == workflow_id)
        )
        return result.scalar_one_or_none()

    async def get_in_tenant(
        self, workflow_id: UUID, tenant_id: UUID
    ) -> Optional[MarketingWorkflow]:
        result = await self._db.execute(
            select(MarketingWorkflow).where(
                MarketingWorkflow.workflow_id == workflow_id,
                MarketingWorkflow.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_tenant(self, tenant_id: UUID) -> List[MarketingWorkflow]:
        result = await self._db.execute(
            select(MarketingWorkflow)
            .where(MarketingWorkflow.tenant_id == tenant_id)
            .order_by(MarketingWorkflow.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_active_for_trigger(
        self, tenant_id: UUID, trigger_type: str
    ) -> List[MarketingWorkflow]:
        """Return ACTIVE workflows whose ``trigger.type`` equals *trigger_type*."""
        result = await self._db.execute(
            select(MarketingWorkflow).where(
                MarketingWorkflow.tenant_id == tenant_id,
                MarketingWorkflow.status == "ACTIVE",
                MarketingWorkflow.trigger["type"].astext == trigger_type,
            )
        )
        return list(result.scalars().all())

    async def create(self, **kwargs: Any) -> MarketingWorkflow:
        workflow = MarketingWorkflow(**kwargs)
        self._db.add(workflow)
        await self._db.flush()
        await self._db.refresh(workflow)
        return workflow

    async def update_fields(self, workflow: MarketingWorkflow, **fields: Any) -> MarketingWorkflow:
        for key, value in fields.items():
            setattr(workflow, key, value)
        await self._db.flush()
        await self._db.refresh(workflow)
        return workflow


class EnrollmentRepository(BaseRepository):
    """Encapsulates queries against ``workflow_enrollments``.

    Every step transition goes through :meth:`claim_due` (row lock) and
    :meth:`advance` (version bump), so two overlapping ticks can never
    execute the same step of the same enrollment twice.
    """

    async def insert_if_absent(
        self,
        workflow_id: UUID,
        lead_id: UUID,
        current_step: Optional[str],
        next_action_at: datetime,
    ) -> WorkflowEnrollment:
        """Create the (workflow, lead) enrollment or return the existing one."""
        stmt = (
            insert(WorkflowEnrollment)
            .values(
                workflow_id=workflow_id,
                lead_id=lead_id,
                current_step=current_step,
                status="ACTIVE",
                next_action_at=next_action_at,
            )
            .on_conflict_do_nothing(
                index_elements=[WorkflowEnrollment.workflow_id, WorkflowEnrollment.lead_id]
            )
        )
        await self._db.execute(stmt)
        result = await self._db.execute(
            select(WorkflowEnrollment).where(
                WorkflowEnrollment.workflow_id == workflow_id,
                WorkflowEnrollment.lead_id == lead_id,
            )
        )
        return result.scalar_one()

    async def list_due_ids(self, now: datetime) -> List[UUID]:
        """Return ids of ACTIVE enrollments whose ``next_action_at`` has passed."""
        result = await self._db.execute(
            select(WorkflowEnrollment.enrollment_id)
            .where(
                WorkflowEnrollment.status == "ACTIVE",
                WorkflowEnrollment.next_action_at <= now,
            )
            .order_by(WorkflowEnrollment.next_action_at.asc())
        )
        return list(result.scalars().all())

    async def claim_due(
        self, enrollment_id: UUID, now: datetime
    ) -> Optional[WorkflowEnrollment]:
        """Lock the enrollment row if it is still ACTIVE and due.

        ``SKIP LOCKED`` makes a concurrent tick move on instead of
        waiting; ``None`` means someone else owns or already advanced it.
        """
        result = await self._db.execute(
            select(WorkflowEnrollment)
            .where(
                WorkflowEnrollment.enrollment_id == enrollment_id,
                WorkflowEnrollment.status == "ACTIVE",
                WorkflowEnrollment.next_action_at <= now,
            )
            .options(selectinload(WorkflowEnrollment.workflow))
            .with_for_update(skip_locked=True, of=WorkflowEnrollment)
        )
        return result.scalar_one_or_none()

    async def advance(
        self,
        enrollment: WorkflowEnrollment,
        next_step: Optional[str],
        next_action_at: Optional[datetime],
    ) -> bool:
        """Move to *next_step*, or complete when it is ``None``.

        Compare-and-swap on ``version``; returns ``False`` when the row
        changed underneath us.
        """
        result = await self._db.execute(
            update(WorkflowEnrollment)
            .where(
                WorkflowEnrollment.enrollment_id == enrollment.enrollment_id,
                WorkflowEnrollment.version == enrollment.version,
            )
            .values(
                current_step=next_step,
                status="ACTIVE" if next_step is not None else "COMPLETED",
                next_action_at=next_action_at if next_step is not None else None,
                version=WorkflowEnrollment.version + 1,
            )
        )
        return (result.rowcount or 0) == 1

    async def list_for_workflow(self, workflow_id: UUID) -> List[WorkflowEnrollment]:
        """Enrollments of a workflow, newest first, with their logs loaded."""
        result = await self._db.execute(
            select(WorkflowEnrollment)
            .where(WorkflowEnrollment.workflow_id == workflow_id)
            .options(selectinload(WorkflowEnrollment.logs))
            .order_by(WorkflowEnrollment.created_at.desc())
        )
        return list(result.scalars().all())


class WorkflowLogRepository(BaseRepository):
    async def create(
        self,
        enrollment_id: UUID,
        step_id: str,
        action_type: str,
        status: str,
        result: Optional[Dict[str, Any]] = None,
    ) -> WorkflowLog:
        log = WorkflowLog(
            enrollment_id=enrollment_id,
            step_id=step_id,
            action_type=action_type,
            status=status,
            result=result or {},
        )
        self._db.add(log)
        await self._db.flush()
        return log
