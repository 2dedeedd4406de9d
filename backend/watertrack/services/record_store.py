"""
WaterTrack Backend: Daily Record Store
======================================

What:  Durable per-(user, day) water records with atomic find-or-create and
       atomic apply-update operations.
How:   DailyRecordStore is the interface services depend on;
       SqlDailyRecordStore implements it on an async SQLAlchemy session.
Who:   Injected into DailyRecordService / MonthlyReportService by the
       FastAPI dependencies (watertrack.dependencies). Tests substitute an
       in-memory implementation.

Atomicity:
    find_one_and_upsert():
        INSERT ... ON CONFLICT (user_id, entry_date) DO NOTHING, then read.
        Two concurrent first-intake-of-the-day requests both succeed and
        both see the single row that won the insert.
    find_one_and_apply_update():
        SELECT ... FOR UPDATE on the day's row, apply the delta to the
        snapshot, write the difference back. Concurrent edits of the same
        day queue on the row lock until the owning request commits, so no
        delta is computed from a stale snapshot.

    Both run inside the request's session; the commit happens in
    get_db_session(). SQLite has no row locks, but it serializes writers on
    the whole database, which gives the same guarantee for tests and local
    runs.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from watertrack.domain import DailySummary, DailyWaterRecord, RecordDefaults, WaterIntake
from watertrack.exceptions import NotFoundError, StoreError, WaterTrackError
from watertrack.models.water_record import WaterIntakeEntry, WaterRecord

logger = logging.getLogger(__name__)

RecordMutation = Callable[[DailyWaterRecord], DailyWaterRecord]


class DailyRecordStore(ABC):
    """
    Persistence capabilities the hydration core relies on.

    Every mutating method is a single atomic operation with respect to other
    callers touching the same (user_id, entry_date) record.
    """

    @abstractmethod
    async def find_one(self, user_id: UUID, entry_date: datetime) -> Optional[DailyWaterRecord]:
        """Returns the day's record, or None."""

    @abstractmethod
    async def find_one_and_upsert(
        self, user_id: UUID, entry_date: datetime, defaults: RecordDefaults
    ) -> DailyWaterRecord:
        """Returns the day's record, creating it from `defaults` if absent."""

    @abstractmethod
    async def find_one_and_apply_update(
        self, user_id: UUID, entry_date: datetime, mutate: RecordMutation
    ) -> DailyWaterRecord:
        """
        Applies `mutate` to the current record and persists the result.

        Raises:
            NotFoundError: no record for the day
            Whatever `mutate` raises; nothing is written in that case
        """

    @abstractmethod
    async def delete_many(self, user_id: UUID) -> int:
        """Deletes every record of the user; returns how many were deleted."""

    @abstractmethod
    async def find_range(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> List[DailySummary]:
        """Summaries with start <= entry_date <= end, ascending by entry_date."""


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _record_not_found(entry_date: datetime) -> NotFoundError:
    return NotFoundError(
        resource="daily water record",
        resource_id=entry_date.date().isoformat(),
    )


class SqlDailyRecordStore(DailyRecordStore):
    """
    DailyRecordStore on an AsyncSession (PostgreSQL in production, SQLite
    in tests).

    The session is owned by the caller: this class flushes but never commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Reads ─────────────────────────────────────────────────────────────

    async def find_one(self, user_id: UUID, entry_date: datetime) -> Optional[DailyWaterRecord]:
        try:
            row = await self._load(user_id, entry_date)
        except SQLAlchemyError as e:
            raise self._store_error("find_one", e, user_id)
        return self._to_domain(row) if row is not None else None

    async def find_range(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> List[DailySummary]:
        query = (
            select(
                WaterRecord.entry_date,
                WaterRecord.daily_water_goal,
                WaterRecord.consumed_water,
                WaterRecord.consumed_times,
                WaterRecord.consumed_water_percentage,
            )
            .where(
                WaterRecord.user_id == user_id,
                WaterRecord.entry_date >= start,
                WaterRecord.entry_date <= end,
            )
            .order_by(WaterRecord.entry_date.asc())
        )
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            raise self._store_error("find_range", e, user_id)

        return [
            DailySummary(
                entry_date=_as_utc(row.entry_date),
                daily_water_goal=row.daily_water_goal,
                consumed_water=row.consumed_water,
                consumed_times=row.consumed_times,
                consumed_water_percentage=row.consumed_water_percentage,
            )
            for row in rows
        ]

    # ── Writes ────────────────────────────────────────────────────────────

    async def find_one_and_upsert(
        self, user_id: UUID, entry_date: datetime, defaults: RecordDefaults
    ) -> DailyWaterRecord:
        try:
            statement = (
                self._insert()(WaterRecord)
                .values(
                    id=uuid4(),
                    user_id=user_id,
                    entry_date=entry_date,
                    daily_water_goal=defaults.daily_water_goal,
                    consumed_water=0,
                    consumed_times=0,
                    consumed_water_percentage=0,
                )
                .on_conflict_do_nothing(index_elements=["user_id", "entry_date"])
            )
            result = await self.db.execute(statement)
            if result.rowcount:
                logger.info("Created daily record for user %s on %s", user_id, entry_date.date())

            row = await self._load(user_id, entry_date)
        except WaterTrackError:
            raise
        except SQLAlchemyError as e:
            raise self._store_error("find_one_and_upsert", e, user_id)

        if row is None:
            # Only reachable if the row was deleted between insert and read
            raise _record_not_found(entry_date)
        return self._to_domain(row)

    async def find_one_and_apply_update(
        self, user_id: UUID, entry_date: datetime, mutate: RecordMutation
    ) -> DailyWaterRecord:
        try:
            row = await self._load(user_id, entry_date, for_update=True)
            if row is None:
                raise _record_not_found(entry_date)

            updated = mutate(self._to_domain(row))
            self._write_back(row, updated)
            await self.db.flush()
        except WaterTrackError:
            raise
        except SQLAlchemyError as e:
            raise self._store_error("find_one_and_apply_update", e, user_id)

        return updated

    async def delete_many(self, user_id: UUID) -> int:
        record_ids = select(WaterRecord.id).where(WaterRecord.user_id == user_id)
        try:
            await self.db.execute(
                delete(WaterIntakeEntry)
                .where(WaterIntakeEntry.record_id.in_(record_ids))
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(
                delete(WaterRecord)
                .where(WaterRecord.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise self._store_error("delete_many", e, user_id)

        deleted = result.rowcount or 0
        logger.info("Deleted %d daily records for user %s", deleted, user_id)
        return deleted

    # ── Internals ─────────────────────────────────────────────────────────

    def _insert(self):
        """Dialect-specific INSERT construct supporting ON CONFLICT."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StoreError(
                message="Unsupported database backend",
                context={"dialect": dialect},
            )
        return insert

    async def _load(
        self, user_id: UUID, entry_date: datetime, for_update: bool = False
    ) -> Optional[WaterRecord]:
        query = (
            select(WaterRecord)
            .where(WaterRecord.user_id == user_id, WaterRecord.entry_date == entry_date)
            .options(selectinload(WaterRecord.intakes))
            # Refresh identity-map copies; another request may have committed
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(row: WaterRecord) -> DailyWaterRecord:
        return DailyWaterRecord(
            user_id=row.user_id,
            entry_date=_as_utc(row.entry_date),
            daily_water_goal=row.daily_water_goal,
            consumed_water=row.consumed_water,
            consumed_times=row.consumed_times,
            consumed_water_percentage=row.consumed_water_percentage,
            water_intakes=tuple(
                WaterIntake(id=entry.id, ml=entry.ml, consumed_at=_as_utc(entry.consumed_at))
                for entry in row.intakes
            ),
        )

    @staticmethod
    def _write_back(row: WaterRecord, record: DailyWaterRecord) -> None:
        """Copies a mutated snapshot onto the locked row and its entries."""
        row.daily_water_goal = record.daily_water_goal
        row.consumed_water = record.consumed_water
        row.consumed_times = record.consumed_times
        row.consumed_water_percentage = record.consumed_water_percentage

        existing = {entry.id: entry for entry in row.intakes}
        entries = []
        for position, intake in enumerate(record.water_intakes):
            entry = existing.get(intake.id)
            if entry is None:
                entry = WaterIntakeEntry(id=intake.id)
            entry.position = position
            entry.ml = intake.ml
            entry.consumed_at = intake.consumed_at
            entries.append(entry)
        # delete-orphan removes entries missing from the new list
        row.intakes = entries

    @staticmethod
    def _store_error(operation: str, error: Exception, user_id: UUID) -> StoreError:
        logger.error(
            "Database error in %s for user %s: %s", operation, user_id, error, exc_info=True
        )
        return StoreError(
            context={"operation": operation, "error_type": type(error).__name__},
        )
