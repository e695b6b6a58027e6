import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from app.api.v1.router import router as api_v1_router
from app.core.exceptions import (
    AgentNotFoundError,
    AssignmentConflictError,
    BookingNotFoundError,
    CampaignAlreadyLaunchedError,
    CampaignNotFoundError,
    EmailDeliveryError,
    InvalidLeadDataError,
    InvalidWorkflowDefinitionError,
    LeadNotFoundError,
    MissingTenantContextError,
    TemplateNotFoundError,
    WorkflowNotFoundError,
)
from app.core.config import settings as app_settings
from app.core.rate_limit import limiter
from app.services.workflow_engine import start_workflow_loop
from app.core.database import AsyncSessionLocal

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the optional in-process workflow scheduler."""
    workflow_task = None
    if app_settings.WORKFLOW_SCHEDULER_ENABLED:
        workflow_task = asyncio.create_task(start_workflow_loop(AsyncSessionLocal))
        logger.info("Background workflow scheduler task scheduled")
    yield
    if workflow_task is not None:
        workflow_task.cancel()
        try:
            await workflow_task
        except asyncio.CancelledError:
            logger.info("Background workflow scheduler task stopped")


app = FastAPI(
    title=f"{app_settings.APP_NAME} Lead Engine",
    description=(
        "Lead capture, interaction scoring, agent assignment, commissions, "
        "property recommendations and marketing workflows"
    ),
    version="0.1.0",
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(LeadNotFoundError)
async def lead_not_found_handler(request: Request, exc: LeadNotFoundError):
    logger.warning("Lead not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "lead_not_found"},
    )


@app.exception_handler(AgentNotFoundError)
async def agent_not_found_handler(request: Request, exc: AgentNotFoundError):
    logger.warning("Agent not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "agent_not_found"},
    )


@app.exception_handler(WorkflowNotFoundError)
async def workflow_not_found_handler(request: Request, exc: WorkflowNotFoundError):
    logger.warning("Workflow not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "workflow_not_found"},
    )


@app.exception_handler(TemplateNotFoundError)
async def template_not_found_handler(request: Request, exc: TemplateNotFoundError):
    logger.warning("Template not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "template_not_found"},
    )


@app.exception_handler(CampaignNotFoundError)
async def campaign_not_found_handler(request: Request, exc: CampaignNotFoundError):
    logger.warning("Campaign not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "campaign_not_found"},
    )


@app.exception_handler(BookingNotFoundError)
async def booking_not_found_handler(request: Request, exc: BookingNotFoundError):
    logger.warning("Booking not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "booking_not_found"},
    )


@app.exception_handler(AssignmentConflictError)
async def assignment_conflict_handler(request: Request, exc: AssignmentConflictError):
    logger.warning("Assignment conflict: %s", exc.detail)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "type": "assignment_conflict"},
    )


@app.exception_handler(CampaignAlreadyLaunchedError)
async def campaign_already_launched_handler(
    request: Request, exc: CampaignAlreadyLaunchedError
):
    logger.warning("Campaign already launched: %s", exc.detail)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "type": "campaign_already_launched"},
    )


@app.exception_handler(InvalidLeadDataError)
async def invalid_lead_data_handler(request: Request, exc: InvalidLeadDataError):
    logger.warning("Invalid lead data: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_lead_data"},
    )


@app.exception_handler(InvalidWorkflowDefinitionError)
async def invalid_workflow_handler(
    request: Request, exc: InvalidWorkflowDefinitionError
):
    logger.warning("Invalid workflow definition: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_workflow_definition"},
    )


@app.exception_handler(MissingTenantContextError)
async def missing_tenant_handler(request: Request, exc: MissingTenantContextError):
    logger.warning("Missing tenant context on %s", request.url.path)
    return JSONResponse(
        status_code=400,
        content={"detail": exc.detail, "type": "missing_tenant"},
    )


@app.exception_handler(EmailDeliveryError)
async def email_delivery_handler(request: Request, exc: EmailDeliveryError):
    logger.error("Email delivery failed: %s", exc.detail)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.detail, "type": "email_delivery_failed"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_errors(exc),
            "type": "validation_error",
        },
    )


def jsonable_errors(exc: RequestValidationError):
    # pydantic error contexts may carry exception instances
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
