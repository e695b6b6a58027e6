"""Workflow definition schemas.

A workflow's ``steps`` is a tree: a list of typed steps where
``CONDITION`` steps carry their own ``yesSteps`` / ``noSteps`` lists.
Each step type is its own model and ``WorkflowStep`` is the
discriminated union over ``type``, so a stored definition parses into
concrete step objects in one pass.  JSON keys stay camelCase to match
what the workflow editor stores.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.common import WorkflowStatus


class _StepBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str = Field(..., min_length=1)


class StartStep(_StepBase):
    type: Literal["START"] = "START"


class EmailStep(_StepBase):
    type: Literal["EMAIL"] = "EMAIL"
    template_id: Optional[str] = None
    subject: Optional[str] = None


class DelayStep(_StepBase):
    type: Literal["DELAY"] = "DELAY"
    duration: float = Field(1, ge=0)
    # Unknown units fall back to hours at execution time.
    unit: str = "hours"


class ConditionStep(_StepBase):
    type: Literal["CONDITION"] = "CONDITION"
    field: str = ""
    operator: str = "equals"
    value: Any = None
    yes_steps: List["WorkflowStep"] = Field(default_factory=list)
    no_steps: List["WorkflowStep"] = Field(default_factory=list)


class TagStep(_StepBase):
    type: Literal["TAG"] = "TAG"
    action: str = "add"
    tag: str = ""


class AssignStep(_StepBase):
    type: Literal["ASSIGN"] = "ASSIGN"
    # Either an agent UUID or the literal ``"auto"`` for round-robin.
    agent_id: str = "auto"

    @field_validator("agent_id")
    @classmethod
    def agent_id_is_auto_or_uuid(cls, v: str) -> str:
        if v != "auto":
            UUID(v)
        return v


WorkflowStep = Annotated[
    Union[StartStep, EmailStep, DelayStep, ConditionStep, TagStep, AssignStep],
    Field(discriminator="type"),
]

ConditionStep.model_rebuild()

STEP_LIST_ADAPTER: TypeAdapter = TypeAdapter(List[WorkflowStep])


class WorkflowTrigger(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class WorkflowCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    trigger: WorkflowTrigger
    steps: List[WorkflowStep] = Field(default_factory=list)
    status: WorkflowStatus = WorkflowStatus.ACTIVE


class WorkflowUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    trigger: Optional[WorkflowTrigger] = None
    steps: Optional[List[WorkflowStep]] = None


class WorkflowStatusUpdate(BaseModel):
    status: WorkflowStatus


class EnrollRequest(BaseModel):
    lead_id: UUID


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class WorkflowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    workflow_id: UUID
    tenant_id: UUID
    name: str
    trigger: Dict[str, Any]
    steps: List[Dict[str, Any]]
    status: str
    created_at: Optional[datetime] = None


class WorkflowLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    log_id: UUID
    step_id: str
    action_type: str
    status: str
    result: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: Optional[datetime] = None


class EnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: UUID
    workflow_id: UUID
    lead_id: UUID
    current_step: Optional[str] = None
    status: str
    next_action_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class EnrollmentWithLogsOut(EnrollmentOut):
    logs: List[WorkflowLogOut] = Field(default_factory=list)


class WorkflowTickResponse(BaseModel):
    success: bool = True
    due: int
    processed: int
    failed: int
