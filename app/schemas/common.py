from enum import Enum
from pydantic import BaseModel


class LeadStatus(str, Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    QUALIFIED = "QUALIFIED"
    CONVERTED = "CONVERTED"
    LOST = "LOST"


class LeadPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class LeadSource(str, Enum):
    website = "website"
    phone = "phone"
    email = "email"
    referral = "referral"
    social = "social"
    other = "other"
    chatbot = "chatbot"


class InteractionType(str, Enum):
    EMAIL_OPEN = "EMAIL_OPEN"
    EMAIL_CLICK = "EMAIL_CLICK"
    PROPERTY_VIEW = "PROPERTY_VIEW"
    FORM_SUBMIT = "FORM_SUBMIT"
    CHAT_INIT = "CHAT_INIT"
    BOOKING_REQUEST = "BOOKING_REQUEST"
    UNIT_VIEW = "UNIT_VIEW"
    EMAIL_SENT = "EMAIL_SENT"


class AgentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"


class AssignmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RecordStatus(str, Enum):
    """Shared ACTIVE/INACTIVE flag for properties and units."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class WorkflowStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class EnrollmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class CampaignStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"


class StepType(str, Enum):
    START = "START"
    EMAIL = "EMAIL"
    DELAY = "DELAY"
    CONDITION = "CONDITION"
    TAG = "TAG"
    ASSIGN = "ASSIGN"


class ConditionOperator(str, Enum):
    equals = "equals"
    greater_than = "greater_than"
    contains = "contains"
    not_empty = "not_empty"


class DelayUnit(str, Enum):
    minutes = "minutes"
    hours = "hours"
    days = "days"


class TagAction(str, Enum):
    add = "add"
    remove = "remove"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
