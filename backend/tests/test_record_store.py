"""
WaterTrack Backend: SQL Record Store Tests
==========================================

What:  SqlDailyRecordStore against SQLite: in-memory for single-session
       behavior, file-backed for concurrent sessions.

Test Strategy:
    ✅ Upsert creates once, then returns the stored row unchanged
    ✅ Mutations persist intakes in order, including removals
    ✅ Missing day → NotFoundError, nothing written
    ✅ find_range bounds and ordering
    ✅ delete_many removes records and their intakes
    ✅ Concurrent first intakes, each in its own session, share one record
"""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from watertrack.database import Base
from watertrack.domain import RecordDefaults
from watertrack.exceptions import NotFoundError
from watertrack.models.water_record import WaterIntakeEntry, WaterRecord
from watertrack.services.daily_record_service import DailyRecordService
from watertrack.services.intake_aggregator import intake_aggregator
from watertrack.services.record_store import SqlDailyRecordStore

DAY = datetime(2024, 5, 20, tzinfo=timezone.utc)


async def count(db_session, model) -> int:
    return (await db_session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_upsert_creates_a_single_row(db_session, user):
    store = SqlDailyRecordStore(db_session)

    first = await store.find_one_and_upsert(user.id, DAY, RecordDefaults(daily_water_goal=2000))
    second = await store.find_one_and_upsert(user.id, DAY, RecordDefaults(daily_water_goal=3500))

    assert await count(db_session, WaterRecord) == 1
    assert first == second
    assert second.daily_water_goal == 2000
    assert second.entry_date == DAY
    assert second.water_intakes == ()


@pytest.mark.asyncio
async def test_find_one_missing_day(db_session, user):
    store = SqlDailyRecordStore(db_session)
    assert await store.find_one(user.id, DAY) is None


@pytest.mark.asyncio
async def test_apply_update_persists_intakes_in_order(db_session, user):
    store = SqlDailyRecordStore(db_session)
    await store.find_one_and_upsert(user.id, DAY, RecordDefaults(daily_water_goal=2000))

    for hour, ml in ((8, 250), (11, 400), (15, 300)):
        await store.find_one_and_apply_update(
            user.id,
            DAY,
            lambda r, ml=ml, hour=hour: intake_aggregator.apply_add(r, ml, DAY + timedelta(hours=hour)),
        )

    stored = await store.find_one(user.id, DAY)
    assert [i.ml for i in stored.water_intakes] == [250, 400, 300]
    assert stored.consumed_water == 950
    assert stored.consumed_times == 3
    assert stored.consumed_water_percentage == 48
    assert stored.water_intakes[1].consumed_at == DAY + timedelta(hours=11)


@pytest.mark.asyncio
async def test_apply_update_removes_dropped_entries(db_session, user):
    store = SqlDailyRecordStore(db_session)
    await store.find_one_and_upsert(user.id, DAY, RecordDefaults(daily_water_goal=2000))
    for ml in (100, 200, 300):
        record = await store.find_one_and_apply_update(
            user.id, DAY, lambda r, ml=ml: intake_aggregator.apply_add(r, ml, DAY)
        )
    middle = record.water_intakes[1].id

    await store.find_one_and_apply_update(
        user.id, DAY, lambda r: intake_aggregator.apply_remove(r, middle)
    )

    stored = await store.find_one(user.id, DAY)
    assert [i.ml for i in stored.water_intakes] == [100, 300]
    assert stored.consumed_water == 400
    assert await count(db_session, WaterIntakeEntry) == 2
    positions = (
        await db_session.execute(select(WaterIntakeEntry.position).order_by(WaterIntakeEntry.position))
    ).scalars().all()
    assert positions == [0, 1]


@pytest.mark.asyncio
async def test_apply_update_missing_day_raises(db_session, user):
    store = SqlDailyRecordStore(db_session)

    with pytest.raises(NotFoundError):
        await store.find_one_and_apply_update(
            user.id, DAY, lambda r: intake_aggregator.apply_add(r, 100, DAY)
        )
    assert await count(db_session, WaterRecord) == 0


@pytest.mark.asyncio
async def test_failed_mutation_writes_nothing(db_session, user):
    store = SqlDailyRecordStore(db_session)
    await store.find_one_and_upsert(user.id, DAY, RecordDefaults(daily_water_goal=2000))
    await store.find_one_and_apply_update(
        user.id, DAY, lambda r: intake_aggregator.apply_add(r, 500, DAY)
    )

    with pytest.raises(NotFoundError):
        await store.find_one_and_apply_update(
            user.id, DAY, lambda r: intake_aggregator.apply_update(r, uuid4(), 900)
        )

    stored = await store.find_one(user.id, DAY)
    assert stored.consumed_water == 500
    assert [i.ml for i in stored.water_intakes] == [500]


@pytest.mark.asyncio
async def test_find_range_is_inclusive_and_ascending(db_session, user):
    store = SqlDailyRecordStore(db_session)
    for offset in (4, 0, 2, 9):
        await store.find_one_and_upsert(
            user.id, DAY + timedelta(days=offset), RecordDefaults(daily_water_goal=2000)
        )

    summaries = await store.find_range(user.id, DAY, DAY + timedelta(days=4))

    assert [s.entry_date for s in summaries] == [
        DAY, DAY + timedelta(days=2), DAY + timedelta(days=4)
    ]
    assert all(s.entry_date.tzinfo is not None for s in summaries)


@pytest.mark.asyncio
async def test_delete_many_removes_records_and_intakes(db_session, user):
    store = SqlDailyRecordStore(db_session)
    for offset in range(2):
        day = DAY + timedelta(days=offset)
        await store.find_one_and_upsert(user.id, day, RecordDefaults(daily_water_goal=2000))
        await store.find_one_and_apply_update(
            user.id, day, lambda r, day=day: intake_aggregator.apply_add(r, 250, day)
        )
    other = uuid4()
    await store.find_one_and_upsert(other, DAY, RecordDefaults(daily_water_goal=2000))

    assert await store.delete_many(user.id) == 2

    assert await count(db_session, WaterIntakeEntry) == 0
    assert await count(db_session, WaterRecord) == 1
    assert await store.find_one(other, DAY) is not None


# ══════════════════════════════════════════════════════════════════════════
# Concurrent sessions
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """
    File-backed SQLite with a regular connection pool, so every session gets
    its own connection and transactions really contend for the database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'watertrack.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


async def log_intake(factory, user_id, ml, when=DAY + timedelta(hours=12)):
    async with factory() as session:
        record = await DailyRecordService(SqlDailyRecordStore(session)).add_intake(
            user_id, when, ml, None, default_goal=2000
        )
        await session.commit()
        return record


@pytest.mark.asyncio
async def test_concurrent_first_intakes_share_one_record(file_session_factory):
    user_id = uuid4()
    amounts = [100, 200, 300, 400]

    await asyncio.gather(*(log_intake(file_session_factory, user_id, ml) for ml in amounts))

    async with file_session_factory() as session:
        assert await count(session, WaterRecord) == 1
        stored = await SqlDailyRecordStore(session).find_one(user_id, DAY)

    assert stored.consumed_water == sum(amounts)
    assert stored.consumed_times == len(amounts)
    assert stored.consumed_water_percentage == 50
    assert sorted(i.ml for i in stored.water_intakes) == amounts

