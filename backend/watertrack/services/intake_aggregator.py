"""
WaterTrack Backend: Intake Aggregator
=====================================

What:  Pure computation of daily aggregates: goal percentage and the
       add / update / remove / goal-change deltas applied to a day record.
How:   Every operation takes a DailyWaterRecord snapshot and returns a new
       one; nothing here performs I/O.
Who:   Called by DailyRecordStore.find_one_and_apply_update() through the
       mutations built in DailyRecordService.

Concurrency:
    The aggregator assumes the snapshot it receives is current and
    consistent. The store serializes concurrent edits of the same record
    (row lock for the duration of the transaction); deltas are never merged
    here.

Rounding:
    Percentages are rounded half-up (2.5 → 3) on every path and are never
    clamped: 110 means the goal was exceeded by 10%.
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple
from uuid import UUID, uuid4

from watertrack.domain import DailyWaterRecord, WaterIntake
from watertrack.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Single intake upper bound (5 liters)
MAX_INTAKE_ML = 5000
# Daily goal upper bound (15 liters)
MAX_DAILY_GOAL_ML = 15000


def validate_ml(ml: int) -> int:
    """Rejects intake volumes outside (0, 5000]."""
    if isinstance(ml, bool) or not isinstance(ml, int) or not 0 < ml <= MAX_INTAKE_ML:
        raise ValidationError(
            message=f"Amount of water must be between 1 and {MAX_INTAKE_ML} ml",
            field="ml",
            context={"ml": ml},
        )
    return ml


def validate_goal(goal: int) -> int:
    """Rejects daily goals outside (0, 15000]."""
    if isinstance(goal, bool) or not isinstance(goal, int) or not 0 < goal <= MAX_DAILY_GOAL_ML:
        raise ValidationError(
            message=f"Daily water goal must be between 1 and {MAX_DAILY_GOAL_ML} ml",
            field="dailyWaterGoal",
            context={"dailyWaterGoal": goal},
        )
    return goal


class IntakeAggregator:
    """
    Applies intake deltas to day-record snapshots.

    Operations:
        percentage_of()      consumed / goal * 100, half-up rounded
        apply_add()          append an entry, bump totals
        apply_update()       replace an entry in place, adjust totals
        apply_remove()       drop an entry, decrement totals
        apply_goal_change()  swap the goal snapshot, re-derive percentage
        find_intake()        locate an entry by id
    """

    def percentage_of(self, consumed: int, goal: int) -> int:
        if goal <= 0:
            logger.warning("Percentage requested for non-positive goal %s", goal)
            return 0
        ratio = Decimal(consumed) * 100 / Decimal(goal)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def find_intake(self, record: DailyWaterRecord, intake_id: UUID) -> Tuple[int, WaterIntake]:
        """
        Locate an intake entry within a day.

        Returns:
            (position, entry)

        Raises:
            NotFoundError: the day has no entry with this id
        """
        for position, intake in enumerate(record.water_intakes):
            if intake.id == intake_id:
                return position, intake
        raise NotFoundError(resource="water intake", resource_id=str(intake_id))

    def apply_add(
        self,
        record: DailyWaterRecord,
        ml: int,
        consumed_at: datetime,
        intake_id: Optional[UUID] = None,
    ) -> DailyWaterRecord:
        consumed_water = record.consumed_water + ml
        intake = WaterIntake(id=intake_id or uuid4(), ml=ml, consumed_at=consumed_at)
        return replace(
            record,
            consumed_water=consumed_water,
            consumed_times=record.consumed_times + 1,
            consumed_water_percentage=self.percentage_of(consumed_water, record.daily_water_goal),
            water_intakes=record.water_intakes + (intake,),
        )

    def apply_update(
        self,
        record: DailyWaterRecord,
        intake_id: UUID,
        ml: int,
        consumed_at: Optional[datetime] = None,
    ) -> DailyWaterRecord:
        """
        Replace an entry's volume (and optionally its timestamp) in place.

        The entry keeps its id and its position in the day's list. When
        consumed_at is None the existing timestamp is kept.
        """
        position, previous = self.find_intake(record, intake_id)
        updated = replace(
            previous,
            ml=ml,
            consumed_at=consumed_at if consumed_at is not None else previous.consumed_at,
        )
        intakes = list(record.water_intakes)
        intakes[position] = updated

        consumed_water = record.consumed_water - previous.ml + ml
        return replace(
            record,
            consumed_water=consumed_water,
            consumed_water_percentage=self.percentage_of(consumed_water, record.daily_water_goal),
            water_intakes=tuple(intakes),
        )

    def apply_remove(self, record: DailyWaterRecord, intake_id: UUID) -> DailyWaterRecord:
        position, removed = self.find_intake(record, intake_id)
        intakes = record.water_intakes[:position] + record.water_intakes[position + 1:]

        consumed_water = record.consumed_water - removed.ml
        return replace(
            record,
            consumed_water=consumed_water,
            consumed_times=record.consumed_times - 1,
            consumed_water_percentage=self.percentage_of(consumed_water, record.daily_water_goal),
            water_intakes=intakes,
        )

    def apply_goal_change(self, record: DailyWaterRecord, goal: int) -> DailyWaterRecord:
        """Re-derive one day's percentage against a new goal; totals are untouched."""
        return replace(
            record,
            daily_water_goal=goal,
            consumed_water_percentage=self.percentage_of(record.consumed_water, goal),
        )


# Stateless; shared by every DailyRecordService instance
intake_aggregator = IntakeAggregator()
