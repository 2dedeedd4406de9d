"""
WaterTrack Backend: Daily Record Service Tests
==============================================

What:  Date normalization and the intake workflows, run against the
       in-memory store from conftest.py.

Test Strategy:
    ✅ Normalization: offsets, aware inputs, idempotence, bad offsets
    ✅ Validation happens before any store call
    ✅ Not-found paths leave the record untouched
    ✅ Remove + re-add restores totals
    ✅ Concurrent first intakes create exactly one record
    ✅ Goal change touches only the requested day
"""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from watertrack.exceptions import NotFoundError, ValidationError
from watertrack.services.daily_record_service import (
    DailyRecordService,
    normalize_entry_date,
    to_utc,
)

DAY = datetime(2024, 3, 10, tzinfo=timezone.utc)
NOON = DAY + timedelta(hours=12)


class TestNormalizeEntryDate:
    def test_truncates_to_utc_midnight(self):
        raw = datetime(2024, 3, 10, 17, 45, 12, 345000, tzinfo=timezone.utc)
        assert normalize_entry_date(raw) == DAY

    def test_is_idempotent(self):
        once = normalize_entry_date(datetime(2024, 3, 10, 23, 59, tzinfo=timezone.utc))
        assert normalize_entry_date(once) == once
        assert normalize_entry_date(DAY) == DAY

    def test_naive_input_is_shifted_by_offset(self):
        # 00:30 local at UTC+2 (offset -120) is 22:30 UTC the day before
        local = datetime(2024, 3, 11, 0, 30)
        assert normalize_entry_date(local, -120) == DAY

    def test_positive_offset_moves_forward(self):
        # 23:00 local at UTC-3 (offset 180) is 02:00 UTC the next day
        local = datetime(2024, 3, 10, 23, 0)
        assert normalize_entry_date(local, 180) == DAY + timedelta(days=1)

    def test_aware_input_ignores_offset(self):
        aware = datetime(2024, 3, 10, 23, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert normalize_entry_date(aware, -120) == DAY + timedelta(days=1)

    @pytest.mark.parametrize("offset", [-841, 841, 10000])
    def test_out_of_range_offset_rejected(self, offset):
        with pytest.raises(ValidationError, match="Time zone offset"):
            normalize_entry_date(NOON, offset)

    def test_to_utc_keeps_time_of_day(self):
        assert to_utc(datetime(2024, 3, 10, 9, 15), 60) == datetime(
            2024, 3, 10, 10, 15, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize(
        "raw, offset",
        [
            (datetime(9999, 12, 31, 23, 30), 60),
            (datetime(1, 1, 1, 0, 10), -60),
            (datetime(9999, 12, 31, 23, 0, tzinfo=timezone(timedelta(hours=-3))), 0),
        ],
    )
    def test_dates_past_the_calendar_edge_are_rejected(self, raw, offset):
        with pytest.raises(ValidationError) as exc_info:
            normalize_entry_date(raw, offset)
        assert exc_info.value.field == "date"


class TestAddIntake:
    @pytest.mark.asyncio
    async def test_first_intake_creates_record_with_default_goal(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()

        record = await service.add_intake(user_id, NOON, 500, None, default_goal=2000)

        assert record.entry_date == DAY
        assert record.daily_water_goal == 2000
        assert record.consumed_water == 500
        assert record.consumed_water_percentage == 25
        assert record.water_intakes[0].consumed_at == NOON
        assert list(fake_store.records) == [(user_id, DAY)]

    @pytest.mark.asyncio
    async def test_percentage_is_not_clamped(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()

        await service.add_intake(user_id, NOON, 500, None, default_goal=2000)
        record = await service.add_intake(user_id, NOON, 1700, None, default_goal=2000)

        assert record.consumed_water == 2200
        assert record.consumed_times == 2
        assert record.consumed_water_percentage == 110

    @pytest.mark.asyncio
    async def test_existing_record_keeps_its_goal_snapshot(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()

        await service.get_or_create_daily_record(user_id, NOON, 1000)
        record = await service.add_intake(user_id, NOON, 500, None, default_goal=3000)

        assert record.daily_water_goal == 1000
        assert record.consumed_water_percentage == 50

    @pytest.mark.asyncio
    async def test_invalid_amount_touches_nothing(self, fake_store):
        service = DailyRecordService(fake_store)

        with pytest.raises(ValidationError):
            await service.add_intake(uuid4(), NOON, 6000, None, default_goal=2000)

        assert fake_store.calls == []
        assert fake_store.records == {}

    @pytest.mark.asyncio
    async def test_concurrent_first_intakes_share_one_record(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()

        await asyncio.gather(
            service.add_intake(user_id, NOON, 300, None, default_goal=2000),
            service.add_intake(user_id, NOON + timedelta(minutes=1), 200, None, default_goal=2000),
        )

        assert len(fake_store.records) == 1
        record = fake_store.records[(user_id, DAY)]
        assert record.consumed_water == 500
        assert record.consumed_times == 2
        assert sorted(i.ml for i in record.water_intakes) == [200, 300]


class TestUpdateAndRemove:
    @pytest.mark.asyncio
    async def test_update_changes_totals(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()
        record = await service.add_intake(user_id, NOON, 500, None, default_goal=2000)
        intake_id = record.water_intakes[0].id

        updated = await service.update_intake(user_id, NOON, intake_id, 800)

        assert updated.consumed_water == 800
        assert updated.consumed_water_percentage == 40
        assert updated.water_intakes[0].id == intake_id

    @pytest.mark.asyncio
    async def test_update_unknown_intake_leaves_record_unmodified(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()
        before = await service.add_intake(user_id, NOON, 500, None, default_goal=2000)

        with pytest.raises(NotFoundError):
            await service.update_intake(user_id, NOON, uuid4(), 800)

        assert fake_store.records[(user_id, DAY)] == before

    @pytest.mark.asyncio
    async def test_update_without_record_is_not_found(self, fake_store):
        service = DailyRecordService(fake_store)
        with pytest.raises(NotFoundError):
            await service.update_intake(uuid4(), NOON, uuid4(), 100)
        assert fake_store.records == {}

    @pytest.mark.asyncio
    async def test_remove_without_record_is_not_found(self, fake_store):
        service = DailyRecordService(fake_store)
        with pytest.raises(NotFoundError):
            await service.remove_intake(uuid4(), NOON, uuid4())

    @pytest.mark.asyncio
    async def test_remove_then_readd_restores_totals(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()
        await service.add_intake(user_id, NOON, 250, None, default_goal=2000)
        before = await service.add_intake(user_id, NOON, 400, None, default_goal=2000)
        removed_id = before.water_intakes[-1].id

        await service.remove_intake(user_id, NOON, removed_id)
        after = await service.add_intake(user_id, NOON, 400, None, default_goal=2000)

        assert after.consumed_water == before.consumed_water
        assert after.consumed_times == before.consumed_times
        assert after.consumed_water_percentage == before.consumed_water_percentage


class TestGoalChange:
    @pytest.mark.asyncio
    async def test_only_requested_day_is_rederived(self, fake_store):
        service = DailyRecordService(fake_store)
        user_id = uuid4()
        yesterday = NOON - timedelta(days=1)
        await service.add_intake(user_id, yesterday, 1000, None, default_goal=2000)
        await service.add_intake(user_id, NOON, 1000, None, default_goal=2000)

        updated = await service.change_goal(user_id, NOON, 4000)

        assert updated.daily_water_goal == 4000
        assert updated.consumed_water_percentage == 25
        untouched = fake_store.records[(user_id, DAY - timedelta(days=1))]
        assert untouched.daily_water_goal == 2000
        assert untouched.consumed_water_percentage == 50

    @pytest.mark.asyncio
    async def test_no_record_returns_none(self, fake_store):
        service = DailyRecordService(fake_store)
        assert await service.change_goal(uuid4(), NOON, 2500) is None
        assert fake_store.records == {}
        assert fake_store.calls == ["find_one_and_apply_update"]

    @pytest.mark.asyncio
    async def test_record_missed_by_a_plain_read_still_gets_the_goal(self, fake_store, monkeypatch):
        service = DailyRecordService(fake_store)
        user_id = uuid4()
        await service.add_intake(user_id, NOON, 1000, None, default_goal=2000)

        async def stale_find_one(*args):
            return None

        # A read taken before a concurrent first intake committed
        monkeypatch.setattr(fake_store, "find_one", stale_find_one)

        updated = await service.change_goal(user_id, NOON, 4000)

        assert updated is not None
        assert fake_store.records[(user_id, DAY)].daily_water_goal == 4000
        assert fake_store.records[(user_id, DAY)].consumed_water_percentage == 25

    @pytest.mark.asyncio
    async def test_invalid_goal_rejected(self, fake_store):
        service = DailyRecordService(fake_store)
        with pytest.raises(ValidationError):
            await service.change_goal(uuid4(), NOON, 20000)
        assert fake_store.calls == []


@pytest.mark.asyncio
async def test_delete_all_removes_only_that_users_records(fake_store):
    service = DailyRecordService(fake_store)
    owner, other = uuid4(), uuid4()
    for days in range(3):
        await service.add_intake(owner, NOON + timedelta(days=days), 100, None, default_goal=2000)
    await service.add_intake(other, NOON, 100, None, default_goal=2000)

    assert await service.delete_all(owner) == 3
    assert list(fake_store.records) == [(other, DAY)]
