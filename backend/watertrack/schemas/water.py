"""
WaterTrack Backend: Water Record Schemas
========================================

What:  Request bodies and responses for /water, /today, /month and /waterrate.

Amount and goal ranges are enforced by the services (400 ValidationError),
so these models only check types and shapes (422 on malformed JSON).
Responses are built from the immutable records in watertrack.domain via
from_attributes.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from watertrack.schemas.common import CamelModel
from watertrack.schemas.user import UserResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class WaterIntakeRequest(CamelModel):
    """
    Body of POST /water and PUT /water/{intakeId}.

    `date` selects the day (client wall-clock time, shifted by
    timeZoneOffset when naive). `consumedAt` defaults to `date` on add and
    to the entry's current timestamp on update.
    """

    date: datetime = Field(description="Client timestamp selecting the day (ISO 8601)")
    ml: int = Field(description="Amount of water in milliliters (1..5000)")
    time_zone_offset: int = Field(
        default=0,
        description="Minutes to add to local time to reach UTC (JS getTimezoneOffset)",
    )
    consumed_at: Optional[datetime] = Field(default=None, description="When the water was drunk")


class WaterRateRequest(CamelModel):
    daily_water_goal: int = Field(description="New daily goal in milliliters (1..15000)")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class WaterIntakeResponse(CamelModel):
    id: uuid.UUID
    ml: int
    consumed_at: datetime


class DailySummaryResponse(CamelModel):
    """One day of the monthly report; never carries the intake list."""

    entry_date: datetime
    daily_water_goal: int
    consumed_water: int
    consumed_times: int
    consumed_water_percentage: int


class DailyWaterRecordResponse(DailySummaryResponse):
    water_intakes: List[WaterIntakeResponse] = Field(default_factory=list)


class WaterRateResponse(CamelModel):
    user: UserResponse
    new_daily_water: Optional[DailyWaterRecordResponse] = Field(
        default=None,
        description="The requested day's record re-derived against the new goal, if it exists",
    )
