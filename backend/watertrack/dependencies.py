"""
WaterTrack Backend: FastAPI Dependencies
========================================

What:  Per-request wiring of the authenticated user, the record store and
       the services built on it.
How:   FastAPI caches dependencies within a request, so the user, the store
       and every service share the single session from get_db_session().
Who:   Declared by route handlers via Depends().
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from watertrack.database import get_db_session
from watertrack.exceptions import AuthenticationError
from watertrack.models.user import User
from watertrack.services.daily_record_service import DailyRecordService
from watertrack.services.monthly_report_service import MonthlyReportService
from watertrack.services.record_store import DailyRecordStore, SqlDailyRecordStore
from watertrack.services.user_service import user_service

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes our 401 envelope, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the bearer token to the acting user.

    Raises:
        AuthenticationError: header missing, token invalid/expired, or the
            token is not the one stored at the user's last login
    """
    if credentials is None:
        raise AuthenticationError()
    return await user_service.authenticate(db, credentials.credentials)


def get_record_store(db: AsyncSession = Depends(get_db_session)) -> DailyRecordStore:
    return SqlDailyRecordStore(db)


def get_daily_record_service(
    store: DailyRecordStore = Depends(get_record_store),
) -> DailyRecordService:
    return DailyRecordService(store)


def get_monthly_report_service(
    store: DailyRecordStore = Depends(get_record_store),
) -> MonthlyReportService:
    return MonthlyReportService(store)
