"""
WaterTrack Backend: Today Route Handler
=======================================

GET /today returns the day's record, creating an empty one (goal copied
from the user's current default) the first time the day is requested.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from watertrack.dependencies import get_current_user, get_daily_record_service
from watertrack.models.user import User
from watertrack.schemas.water import DailyWaterRecordResponse
from watertrack.services.daily_record_service import DailyRecordService

router = APIRouter(tags=["Water"])


@router.get("/today", response_model=DailyWaterRecordResponse, summary="Today's water record")
async def get_today(
    date: Optional[datetime] = Query(
        default=None, description="Client timestamp (defaults to the server's now)"
    ),
    time_zone_offset: int = Query(default=0, alias="timeZoneOffset"),
    user: User = Depends(get_current_user),
    records: DailyRecordService = Depends(get_daily_record_service),
) -> DailyWaterRecordResponse:
    record = await records.get_or_create_daily_record(
        user.id,
        date or datetime.now(timezone.utc),
        user.daily_water_goal,
        tz_offset_minutes=time_zone_offset,
    )
    return DailyWaterRecordResponse.model_validate(record)
