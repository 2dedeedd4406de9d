"""
WaterTrack Backend: Daily Goal Route Handler
============================================

PATCH /waterrate changes the user's default goal and re-derives the
percentage of the requested day's record. Other days keep the goal they
were created with.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from watertrack.database import get_db_session
from watertrack.dependencies import get_current_user, get_daily_record_service
from watertrack.models.user import User
from watertrack.schemas.common import ErrorResponse
from watertrack.schemas.user import UserResponse
from watertrack.schemas.water import (
    DailyWaterRecordResponse,
    WaterRateRequest,
    WaterRateResponse,
)
from watertrack.services.daily_record_service import DailyRecordService
from watertrack.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Water"])


@router.patch(
    "/waterrate",
    response_model=WaterRateResponse,
    responses={400: {"description": "Goal out of range", "model": ErrorResponse}},
    summary="Change the daily water goal",
)
async def update_water_rate(
    body: WaterRateRequest,
    date: Optional[datetime] = Query(
        default=None, description="Day whose record follows the new goal (defaults to now)"
    ),
    time_zone_offset: int = Query(default=0, alias="timeZoneOffset"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    records: DailyRecordService = Depends(get_daily_record_service),
) -> WaterRateResponse:
    record = await records.change_goal(
        user.id,
        date or datetime.now(timezone.utc),
        body.daily_water_goal,
        tz_offset_minutes=time_zone_offset,
    )
    updated = await user_service.change_daily_goal(db, user, body.daily_water_goal)
    logger.info("User %s set daily goal to %d ml", user.id, body.daily_water_goal)

    return WaterRateResponse(
        user=UserResponse.model_validate(updated),
        new_daily_water=(
            DailyWaterRecordResponse.model_validate(record) if record is not None else None
        ),
    )
