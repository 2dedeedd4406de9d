"""
WaterTrack Backend: Monthly Report Service
==========================================

What:  Summaries of a user's daily records over an inclusive date range.
Who:   Called by GET /month.

Each summary carries the day's totals and goal snapshot but never the raw
intake list or the record's internal id. Days without a record are simply
absent; an empty range is an empty list, not an error.
"""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from watertrack.domain import DailySummary
from watertrack.exceptions import ValidationError
from watertrack.services.daily_record_service import normalize_entry_date
from watertrack.services.record_store import DailyRecordStore

logger = logging.getLogger(__name__)


class MonthlyReportService:
    def __init__(self, store: DailyRecordStore):
        self.store = store

    async def get_range(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> List[DailySummary]:
        """
        Summaries for start <= entry_date <= end, ascending.

        Both bounds are normalized to their UTC day, so any timestamp within
        the last day still includes that day.

        Raises:
            ValidationError: start falls after end
        """
        first = normalize_entry_date(start)
        last = normalize_entry_date(end)
        if first > last:
            raise ValidationError(
                message="startDate must not be after endDate",
                field="startDate",
                context={"startDate": first.isoformat(), "endDate": last.isoformat()},
            )

        summaries = await self.store.find_range(user_id, first, last)
        logger.debug(
            "Monthly report for user %s: %d days in [%s, %s]",
            user_id, len(summaries), first.date(), last.date(),
        )
        return summaries
