class LeadEngineError(Exception):
    """Base class for all lead-engine domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except LeadEngineError`` clause can catch any domain
    error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class LeadNotFoundError(LeadEngineError):
    """Raised when a requested lead does not exist."""

    def __init__(self, detail: str = "Lead not found"):
        super().__init__(detail)


class AgentNotFoundError(LeadEngineError):
    """Raised when a requested agent does not exist."""

    def __init__(self, detail: str = "Agent not found"):
        super().__init__(detail)


class WorkflowNotFoundError(LeadEngineError):
    """Raised when a marketing workflow does not exist or is not active."""

    def __init__(self, detail: str = "Workflow not found"):
        super().__init__(detail)


class TemplateNotFoundError(LeadEngineError):
    """Raised when an email template referenced by a step or campaign is missing."""

    def __init__(self, detail: str = "Email template not found"):
        super().__init__(detail)


class CampaignNotFoundError(LeadEngineError):
    """Raised when a campaign does not exist in the caller's tenant."""

    def __init__(self, detail: str = "Campaign not found"):
        super().__init__(detail)


class BookingNotFoundError(LeadEngineError):
    """Raised when a booking does not exist."""

    def __init__(self, detail: str = "Booking not found"):
        super().__init__(detail)


class AssignmentConflictError(LeadEngineError):
    """Raised when a manual assignment collides with another agent's active link.

    Re-assigning the *same* agent is idempotent and never raises; use
    the reassignment primitive to move a lead between agents.
    """

    def __init__(
        self, detail: str = "Lead already has an active assignment to another agent"
    ):
        super().__init__(detail)


class CampaignAlreadyLaunchedError(LeadEngineError):
    """Raised when launching a campaign that has already been sent."""

    def __init__(self, detail: str = "Campaign already launched"):
        super().__init__(detail)


class InvalidLeadDataError(LeadEngineError):
    """Raised when lead data is invalid."""

    def __init__(self, detail: str = "Invalid lead data"):
        super().__init__(detail)


class InvalidWorkflowDefinitionError(LeadEngineError):
    """Raised when a workflow step tree cannot be parsed."""

    def __init__(self, detail: str = "Invalid workflow definition"):
        super().__init__(detail)


class MissingTenantContextError(LeadEngineError):
    """Raised when a tenant-scoped operation runs without a tenant."""

    def __init__(self, detail: str = "Tenant ID is required"):
        super().__init__(detail)


class EmailDeliveryError(LeadEngineError):
    """Raised when an interactive call could not deliver its email."""

    def __init__(self, detail: str = "Failed to send email"):
        super().__init__(detail)
