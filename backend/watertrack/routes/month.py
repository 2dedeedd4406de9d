"""
WaterTrack Backend: Monthly Report Route Handler
================================================

GET /month?startDate&endDate returns one summary per recorded day in the
inclusive range, oldest first. Days without records are omitted.
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query

from watertrack.dependencies import get_current_user, get_monthly_report_service
from watertrack.models.user import User
from watertrack.schemas.common import ErrorResponse
from watertrack.schemas.water import DailySummaryResponse
from watertrack.services.monthly_report_service import MonthlyReportService

router = APIRouter(tags=["Water"])


@router.get(
    "/month",
    response_model=List[DailySummaryResponse],
    responses={400: {"description": "startDate after endDate", "model": ErrorResponse}},
    summary="Daily summaries for a date range",
)
async def get_month(
    start_date: datetime = Query(alias="startDate"),
    end_date: datetime = Query(alias="endDate"),
    user: User = Depends(get_current_user),
    reports: MonthlyReportService = Depends(get_monthly_report_service),
) -> List[DailySummaryResponse]:
    summaries = await reports.get_range(user.id, start_date, end_date)
    return [DailySummaryResponse.model_validate(summary) for summary in summaries]
