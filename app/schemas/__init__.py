"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    LeadStatus as LeadStatus,
    LeadPriority as LeadPriority,
    LeadSource as LeadSource,
    InteractionType as InteractionType,
    AgentStatus as AgentStatus,
    AssignmentStatus as AssignmentStatus,
    BookingStatus as BookingStatus,
    CommissionStatus as CommissionStatus,
    WorkflowStatus as WorkflowStatus,
    EnrollmentStatus as EnrollmentStatus,
    StepType as StepType,
    ConditionOperator as ConditionOperator,
    DelayUnit as DelayUnit,
    SuccessResponse as SuccessResponse,
)

# Lead schemas
from app.schemas.lead import (
    LeadCaptureRequest as LeadCaptureRequest,
    LeadCreate as LeadCreate,
    LeadStatusUpdate as LeadStatusUpdate,
    LeadAgentUpdate as LeadAgentUpdate,
    LeadOut as LeadOut,
    LeadCaptureResponse as LeadCaptureResponse,
    AssignmentOut as AssignmentOut,
)

# Interaction schemas
from app.schemas.interaction import (
    TrackInteractionRequest as TrackInteractionRequest,
    TrackInteractionResponse as TrackInteractionResponse,
    InteractionOut as InteractionOut,
)

# Workflow schemas
from app.schemas.workflow import (
    WorkflowStep as WorkflowStep,
    StartStep as StartStep,
    EmailStep as EmailStep,
    DelayStep as DelayStep,
    ConditionStep as ConditionStep,
    TagStep as TagStep,
    AssignStep as AssignStep,
    WorkflowCreate as WorkflowCreate,
    WorkflowOut as WorkflowOut,
    EnrollmentOut as EnrollmentOut,
)
