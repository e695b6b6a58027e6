from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from pydantic import BaseModel

from app.core.background import BackgroundJobRunner
from app.core.exceptions import BookingNotFoundError
from app.repositories.booking_repository import BookingRepository
from app.schemas.common import BookingStatus, SuccessResponse
from app.services import jobs
from app.services.commission_calculator import should_calculate_commission
from app.api.deps import get_booking_repo, get_job_runner

router = APIRouter(prefix="/commissions", tags=["Commissions"])


class BookingStatusChange(BaseModel):
    """Optional transition; when both are omitted the calculator always runs."""

    previous_status: Optional[BookingStatus] = None
    status: Optional[BookingStatus] = None


class CommissionTriggerResponse(SuccessResponse):
    booking_id: UUID
    scheduled: bool


@router.post(
    "/bookings/{booking_id}", response_model=CommissionTriggerResponse, status_code=202
)
async def trigger_commission(
    booking_id: UUID,
    background_tasks: BackgroundTasks,
    change: Optional[BookingStatusChange] = Body(None),
    runner: BackgroundJobRunner = Depends(get_job_runner),
    booking_repo: BookingRepository = Depends(get_booking_repo),
) -> CommissionTriggerResponse:
    """Hook for the booking flow: schedule commission calculation.

    An unknown booking is a 404.  The calculation itself runs after the
    response; its failures are logged, never returned.
    """
    if not await booking_repo.exists(booking_id):
        raise BookingNotFoundError()

    scheduled = True
    if change is not None and change.status is not None:
        scheduled = should_calculate_commission(change.previous_status, change.status)

    if scheduled:
        background_tasks.add_task(
            runner.run, "calculate_commission", jobs.calculate_commission, booking_id=booking_id
        )
    return CommissionTriggerResponse(booking_id=booking_id, scheduled=scheduled)
