"""Unauthenticated endpoints: widget/chatbot capture and email tracking.

The tracking handlers never fail from the caller's point of view: the
pixel is always served and the redirect always issued.  Recording the
event runs as a background job after the response.
"""

import base64
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from app.core.background import BackgroundJobRunner
from app.core.rate_limit import limiter
from app.repositories.lead_repository import LeadRepository
from app.schemas.common import InteractionType
from app.schemas.lead import LeadCaptureRequest, LeadCaptureResponse, LeadOut
from app.services import jobs
from app.services.lead_capture_service import LeadCaptureService
from app.api.deps import get_job_runner, get_lead_capture_service, get_lead_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"])

TRACKING_PIXEL = base64.b64decode(
    "R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7"
)
_NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def _uuid_or_none(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


@router.post("/leads/capture", response_model=LeadCaptureResponse, status_code=201)
@limiter.limit("10/minute")
async def capture_lead(
    request: Request,
    response: Response,
    request_body: LeadCaptureRequest,
    background_tasks: BackgroundTasks,
    service: LeadCaptureService = Depends(get_lead_capture_service),
    lead_repo: LeadRepository = Depends(get_lead_repo),
) -> LeadCaptureResponse:
    """Capture or re-engage a lead from the website widget or chatbot.

    Rate-limited to 10 requests/minute per IP.  Returns 201 for a new
    lead and 200 when an existing lead was re-engaged.
    """
    channel = "chatbot" if request_body.source.value == "chatbot" else "widget"
    result = await service.capture_lead(
        tenant_id=request_body.tenant_id,
        lead_data=request_body.model_dump(exclude={"tenant_id"}),
        lead_repo=lead_repo,
        channel=channel,
        background_tasks=background_tasks,
    )
    if not result["created"]:
        response.status_code = 200
    return LeadCaptureResponse(
        created=result["created"], lead=LeadOut.model_validate(result["lead"])
    )


def _schedule_email_event(
    background_tasks: BackgroundTasks,
    runner: BackgroundJobRunner,
    interaction_type: InteractionType,
    lead: Optional[str],
    campaign: Optional[str],
    workflow: Optional[str],
    target_url: Optional[str] = None,
) -> None:
    lead_id = _uuid_or_none(lead)
    if lead_id is None:
        return
    background_tasks.add_task(
        runner.run,
        f"track_{interaction_type.value.lower()}",
        jobs.record_email_event,
        interaction_type=interaction_type.value,
        lead_id=lead_id,
        campaign_id=_uuid_or_none(campaign),
        workflow_id=_uuid_or_none(workflow),
        target_url=target_url,
    )


@router.get("/track/open")
async def track_open(
    background_tasks: BackgroundTasks,
    lead: Optional[str] = Query(None, alias="l"),
    campaign: Optional[str] = Query(None, alias="c"),
    workflow: Optional[str] = Query(None, alias="w"),
    runner: BackgroundJobRunner = Depends(get_job_runner),
) -> Response:
    """Serve the 1x1 open-tracking GIF and record EMAIL_OPEN."""
    try:
        _schedule_email_event(
            background_tasks, runner, InteractionType.EMAIL_OPEN, lead, campaign, workflow
        )
    except Exception:
        logger.error("Failed to schedule open tracking for lead %s", lead, exc_info=True)
    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers=_NO_CACHE_HEADERS)


@router.get("/track/click")
async def track_click(
    background_tasks: BackgroundTasks,
    lead: Optional[str] = Query(None, alias="l"),
    campaign: Optional[str] = Query(None, alias="c"),
    workflow: Optional[str] = Query(None, alias="w"),
    url: Optional[str] = Query(None, alias="u"),
    runner: BackgroundJobRunner = Depends(get_job_runner),
) -> RedirectResponse:
    """Record EMAIL_CLICK and redirect to ``u`` (or ``/``)."""
    try:
        _schedule_email_event(
            background_tasks,
            runner,
            InteractionType.EMAIL_CLICK,
            lead,
            campaign,
            workflow,
            target_url=url,
        )
    except Exception:
        logger.error("Failed to schedule click tracking for lead %s", lead, exc_info=True)
    return RedirectResponse(url=url or "/", status_code=302)
