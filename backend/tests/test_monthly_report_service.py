"""
WaterTrack Backend: Monthly Report Service Tests
================================================
"""

from dataclasses import fields
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from watertrack.exceptions import ValidationError
from watertrack.services.daily_record_service import DailyRecordService
from watertrack.services.monthly_report_service import MonthlyReportService

MARCH_1 = datetime(2024, 3, 1, tzinfo=timezone.utc)


def march(day: int, hour: int = 12) -> datetime:
    return MARCH_1 + timedelta(days=day - 1, hours=hour)


@pytest.mark.asyncio
async def test_range_returns_recorded_days_ascending(fake_store):
    records = DailyRecordService(fake_store)
    user_id = uuid4()
    # Inserted out of order on purpose
    await records.add_intake(user_id, march(3), 700, None, default_goal=2000)
    await records.add_intake(user_id, march(1), 500, None, default_goal=2000)
    await records.add_intake(user_id, march(9), 100, None, default_goal=2000)

    summaries = await MonthlyReportService(fake_store).get_range(user_id, march(1, 0), march(5, 0))

    assert [s.entry_date.day for s in summaries] == [1, 3]
    assert [s.consumed_water for s in summaries] == [500, 700]
    assert summaries[1].consumed_water_percentage == 35
    for summary in summaries:
        assert "water_intakes" not in {f.name for f in fields(summary)}


@pytest.mark.asyncio
async def test_end_bound_is_inclusive_for_any_time_of_day(fake_store):
    records = DailyRecordService(fake_store)
    user_id = uuid4()
    await records.add_intake(user_id, march(5, 20), 300, None, default_goal=2000)

    summaries = await MonthlyReportService(fake_store).get_range(user_id, march(1, 0), march(5, 0))

    assert len(summaries) == 1


@pytest.mark.asyncio
async def test_empty_range_is_empty_list(fake_store):
    report = MonthlyReportService(fake_store)
    assert await report.get_range(uuid4(), march(1), march(31)) == []


@pytest.mark.asyncio
async def test_other_users_are_excluded(fake_store):
    records = DailyRecordService(fake_store)
    await records.add_intake(uuid4(), march(2), 300, None, default_goal=2000)

    assert await MonthlyReportService(fake_store).get_range(uuid4(), march(1), march(5)) == []


@pytest.mark.asyncio
async def test_inverted_range_rejected(fake_store):
    with pytest.raises(ValidationError, match="startDate"):
        await MonthlyReportService(fake_store).get_range(uuid4(), march(5), march(1))
    assert fake_store.calls == []
