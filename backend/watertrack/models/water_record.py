"""
WaterTrack Backend: Daily Water Record SQLAlchemy Models
========================================================

What:  ORM models for the `water_records` and `water_intakes` tables.
How:   One WaterRecord row per (user_id, entry_date); its intake entries are
       child rows ordered by `position`.
Who:   Read and written only by SqlDailyRecordStore; services and routes work
       with the immutable snapshots in watertrack.domain.

Table Design:
    - UNIQUE(user_id, entry_date): at most one record per user per UTC day.
      The find-or-create path relies on it (INSERT ... ON CONFLICT DO NOTHING).
    - entry_date is always UTC midnight.
    - water_intakes.position keeps the list order stable when an entry is
      edited in place; positions are renumbered on every write.
    - ON DELETE CASCADE from records to intakes, so deleting a user's records
      removes their entries in the same statement.
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from watertrack.database import Base


class WaterRecord(Base):
    """
    Aggregate of one user's intake on one UTC day.

    Query Patterns:
        - Today / mutations: WHERE user_id = :u AND entry_date = :d
          → unique index uq_water_records_user_date
        - Monthly report: WHERE user_id = :u AND entry_date BETWEEN :a AND :b
          ORDER BY entry_date → same index, range scan
    """

    __tablename__ = "water_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    entry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    daily_water_goal: Mapped[int] = mapped_column(Integer, nullable=False)
    consumed_water: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consumed_times: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consumed_water_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    intakes: Mapped[List["WaterIntakeEntry"]] = relationship(
        back_populates="record",
        order_by="WaterIntakeEntry.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "entry_date", name="uq_water_records_user_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<WaterRecord(user_id={self.user_id}, entry_date='{self.entry_date}', "
            f"consumed_water={self.consumed_water})>"
        )


class WaterIntakeEntry(Base):
    """One logged drinking event, owned by a WaterRecord."""

    __tablename__ = "water_intakes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("water_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    ml: Mapped[int] = mapped_column(Integer, nullable=False)
    consumed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    record: Mapped[WaterRecord] = relationship(back_populates="intakes")

    __table_args__ = (
        Index("idx_water_intakes_record_position", "record_id", "position"),
        CheckConstraint("ml > 0 AND ml <= 5000", name="ck_water_intakes_ml_range"),
    )
