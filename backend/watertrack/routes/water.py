"""
WaterTrack Backend: Water Intake Route Handlers
===============================================

What:  Add, edit and remove intake entries of a day.
How:   Each handler makes exactly one DailyRecordService call; the returned
       record is the day's aggregate after the change.

Day selection:
    POST and PUT take `date` and `timeZoneOffset` in the body, DELETE takes
    them as query parameters. The day is the UTC day of that timestamp.
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from watertrack.dependencies import get_current_user, get_daily_record_service
from watertrack.models.user import User
from watertrack.schemas.common import ErrorResponse
from watertrack.schemas.water import DailyWaterRecordResponse, WaterIntakeRequest
from watertrack.services.daily_record_service import DailyRecordService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/water", tags=["Water"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=DailyWaterRecordResponse,
    responses={400: {"description": "Amount out of range", "model": ErrorResponse}},
    summary="Log a water intake",
)
async def add_intake(
    body: WaterIntakeRequest,
    user: User = Depends(get_current_user),
    records: DailyRecordService = Depends(get_daily_record_service),
) -> DailyWaterRecordResponse:
    record = await records.add_intake(
        user.id,
        body.date,
        body.ml,
        body.consumed_at,
        default_goal=user.daily_water_goal,
        tz_offset_minutes=body.time_zone_offset,
    )
    return DailyWaterRecordResponse.model_validate(record)


@router.put(
    "/{intake_id}",
    response_model=DailyWaterRecordResponse,
    responses={
        400: {"description": "Amount out of range", "model": ErrorResponse},
        404: {"description": "No record or no such intake", "model": ErrorResponse},
    },
    summary="Edit a water intake",
)
async def update_intake(
    intake_id: UUID,
    body: WaterIntakeRequest,
    user: User = Depends(get_current_user),
    records: DailyRecordService = Depends(get_daily_record_service),
) -> DailyWaterRecordResponse:
    record = await records.update_intake(
        user.id,
        body.date,
        intake_id,
        body.ml,
        consumed_at=body.consumed_at,
        tz_offset_minutes=body.time_zone_offset,
    )
    return DailyWaterRecordResponse.model_validate(record)


@router.delete(
    "/{intake_id}",
    response_model=DailyWaterRecordResponse,
    responses={404: {"description": "No record or no such intake", "model": ErrorResponse}},
    summary="Remove a water intake",
)
async def remove_intake(
    intake_id: UUID,
    date: datetime = Query(description="Timestamp selecting the day (ISO 8601)"),
    time_zone_offset: int = Query(default=0, alias="timeZoneOffset"),
    user: User = Depends(get_current_user),
    records: DailyRecordService = Depends(get_daily_record_service),
) -> DailyWaterRecordResponse:
    record = await records.remove_intake(
        user.id, date, intake_id, tz_offset_minutes=time_zone_offset
    )
    return DailyWaterRecordResponse.model_validate(record)
