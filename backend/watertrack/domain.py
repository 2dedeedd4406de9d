"""
WaterTrack Backend: Domain Records
==================================

What:  Immutable value objects for daily water records.
Who:   Produced by DailyRecordStore implementations, transformed by
       IntakeAggregator, serialized by the API schemas.

These are plain dataclasses so the aggregation logic can be exercised
without a database session. ORM rows live in watertrack.models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple
from uuid import UUID


@dataclass(frozen=True)
class WaterIntake:
    """One logged drinking event inside a day."""

    id: UUID
    ml: int
    consumed_at: datetime


@dataclass(frozen=True)
class DailyWaterRecord:
    """
    Aggregate of one user's intake on one UTC day.

    Invariants:
        consumed_water == sum(i.ml for i in water_intakes)
        consumed_times == len(water_intakes)
        consumed_water_percentage == percentage_of(consumed_water, daily_water_goal)
    """

    user_id: UUID
    entry_date: datetime
    daily_water_goal: int
    consumed_water: int = 0
    consumed_times: int = 0
    consumed_water_percentage: int = 0
    water_intakes: Tuple[WaterIntake, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RecordDefaults:
    """Values written only when a day record is created."""

    daily_water_goal: int


@dataclass(frozen=True)
class DailySummary:
    """Projection of a day record used by the monthly report (no intakes)."""

    entry_date: datetime
    daily_water_goal: int
    consumed_water: int
    consumed_times: int
    consumed_water_percentage: int
