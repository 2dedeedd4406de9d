"""
WaterTrack Backend: Daily Record Service
========================================

What:  Turns wall-clock request input into the UTC day key and runs each
       intake mutation as one store operation.
How:   Normalizes dates, validates amounts, then hands an IntakeAggregator
       delta to DailyRecordStore.find_one_and_apply_update().
Who:   Called by the /water, /today and /waterrate route handlers and by
       UserService when an account is deleted.

Flow (POST /water):
    ┌───────────┐    ┌────────────┐    ┌────────────────┐    ┌─────────────┐
    │ normalize │───▶│  validate  │───▶│ find-or-create │───▶│ apply_add   │
    │ date      │    │  ml        │    │ (upsert)       │    │ (row lock)  │
    └───────────┘    └────────────┘    └────────────────┘    └─────────────┘

    Validation happens before the first store call, so a rejected request
    never writes anything.

Time zones:
    timeZoneOffset follows JavaScript's Date.getTimezoneOffset(): minutes to
    add to local time to reach UTC (UTC+2 → -120). It is applied only to
    naive timestamps; a timestamp that carries its own zone is converted
    directly.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from watertrack.domain import DailyWaterRecord, RecordDefaults
from watertrack.exceptions import NotFoundError, ValidationError
from watertrack.services.intake_aggregator import (
    IntakeAggregator,
    intake_aggregator,
    validate_goal,
    validate_ml,
)
from watertrack.services.record_store import DailyRecordStore

logger = logging.getLogger(__name__)

# UTC-12:00 .. UTC+14:00 with margin on both sides
MAX_TZ_OFFSET_MINUTES = 14 * 60


def to_utc(raw: datetime, tz_offset_minutes: int = 0) -> datetime:
    """
    Convert a client timestamp to an aware UTC datetime.

    Raises:
        ValidationError: offset outside ±840 minutes, or the shifted date
            falls outside the datetime range
    """
    if not -MAX_TZ_OFFSET_MINUTES <= tz_offset_minutes <= MAX_TZ_OFFSET_MINUTES:
        raise ValidationError(
            message=f"Time zone offset must be between -{MAX_TZ_OFFSET_MINUTES} "
            f"and {MAX_TZ_OFFSET_MINUTES} minutes",
            field="timeZoneOffset",
            context={"timeZoneOffset": tz_offset_minutes},
        )
    try:
        if raw.tzinfo is not None:
            return raw.astimezone(timezone.utc)
        return (raw + timedelta(minutes=tz_offset_minutes)).replace(tzinfo=timezone.utc)
    except OverflowError:
        raise ValidationError(
            message="Date is out of the supported range",
            field="date",
            context={"date": raw.isoformat(), "timeZoneOffset": tz_offset_minutes},
        )


def normalize_entry_date(raw: datetime, tz_offset_minutes: int = 0) -> datetime:
    """
    Day key for a client timestamp: UTC midnight of the day it falls on.

    Idempotent: an aware UTC-midnight value is returned unchanged.
    """
    utc = to_utc(raw, tz_offset_minutes)
    return utc.replace(hour=0, minute=0, second=0, microsecond=0)


class DailyRecordService:
    """
    Day-record operations for one request.

    Responsibilities:
        - get_or_create_daily_record(): atomic find-or-create
        - get_daily_record(): plain read
        - add_intake() / update_intake() / remove_intake(): intake mutations
        - change_goal(): re-derive one day's percentage against a new goal
        - delete_all(): cascade on account deletion

    entry_date arguments may be any timestamp; they are normalized here, so
    callers never need to truncate dates themselves.
    """

    def __init__(
        self,
        store: DailyRecordStore,
        aggregator: IntakeAggregator = intake_aggregator,
    ):
        self.store = store
        self.aggregator = aggregator

    async def get_or_create_daily_record(
        self,
        user_id: UUID,
        entry_date: datetime,
        default_goal: int,
        tz_offset_minutes: int = 0,
    ) -> DailyWaterRecord:
        day = normalize_entry_date(entry_date, tz_offset_minutes)
        validate_goal(default_goal)
        return await self.store.find_one_and_upsert(
            user_id, day, RecordDefaults(daily_water_goal=default_goal)
        )

    async def get_daily_record(
        self, user_id: UUID, entry_date: datetime, tz_offset_minutes: int = 0
    ) -> Optional[DailyWaterRecord]:
        day = normalize_entry_date(entry_date, tz_offset_minutes)
        return await self.store.find_one(user_id, day)

    async def add_intake(
        self,
        user_id: UUID,
        entry_date: datetime,
        ml: int,
        consumed_at: Optional[datetime],
        default_goal: int,
        tz_offset_minutes: int = 0,
    ) -> DailyWaterRecord:
        """
        Log a drink, creating the day's record on the first intake.

        consumed_at defaults to the request's own timestamp.
        """
        day = normalize_entry_date(entry_date, tz_offset_minutes)
        validate_ml(ml)
        validate_goal(default_goal)
        moment = to_utc(consumed_at if consumed_at is not None else entry_date, tz_offset_minutes)

        await self.store.find_one_and_upsert(
            user_id, day, RecordDefaults(daily_water_goal=default_goal)
        )
        record = await self.store.find_one_and_apply_update(
            user_id, day, lambda current: self.aggregator.apply_add(current, ml, moment)
        )
        logger.info(
            "User %s logged %d ml on %s (total %d ml, %d%%)",
            user_id, ml, day.date(), record.consumed_water, record.consumed_water_percentage,
        )
        return record

    async def update_intake(
        self,
        user_id: UUID,
        entry_date: datetime,
        intake_id: UUID,
        ml: int,
        consumed_at: Optional[datetime] = None,
        tz_offset_minutes: int = 0,
    ) -> DailyWaterRecord:
        """
        Raises:
            ValidationError: ml out of range, bad offset
            NotFoundError: no record for the day, or no such intake in it
        """
        day = normalize_entry_date(entry_date, tz_offset_minutes)
        validate_ml(ml)
        moment = to_utc(consumed_at, tz_offset_minutes) if consumed_at is not None else None

        record = await self.store.find_one_and_apply_update(
            user_id,
            day,
            lambda current: self.aggregator.apply_update(current, intake_id, ml, moment),
        )
        logger.info("User %s updated intake %s on %s", user_id, intake_id, day.date())
        return record

    async def remove_intake(
        self,
        user_id: UUID,
        entry_date: datetime,
        intake_id: UUID,
        tz_offset_minutes: int = 0,
    ) -> DailyWaterRecord:
        day = normalize_entry_date(entry_date, tz_offset_minutes)
        record = await self.store.find_one_and_apply_update(
            user_id,
            day,
            lambda current: self.aggregator.apply_remove(current, intake_id),
        )
        logger.info("User %s removed intake %s on %s", user_id, intake_id, day.date())
        return record

    async def change_goal(
        self,
        user_id: UUID,
        entry_date: datetime,
        goal: int,
        tz_offset_minutes: int = 0,
    ) -> Optional[DailyWaterRecord]:
        """
        Apply a new goal to one day's record; other days keep their snapshot.

        Returns None when the user has no record for that day yet; the new
        goal then reaches the day through the user's default on creation.
        """
        day = normalize_entry_date(entry_date, tz_offset_minutes)
        validate_goal(goal)
        try:
            return await self.store.find_one_and_apply_update(
                user_id, day, lambda current: self.aggregator.apply_goal_change(current, goal)
            )
        except NotFoundError:
            # Only a missing record raises here
            return None

    async def delete_all(self, user_id: UUID) -> int:
        return await self.store.delete_many(user_id)
