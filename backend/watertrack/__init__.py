"""
WaterTrack Backend: Application Package
=======================================

What: Personal hydration-tracking REST API.
Who:  Imported by uvicorn (`watertrack.main:app`), Alembic and pytest.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← date normalization, auth flows
    │   IntakeAggregator (pure)           │  ← daily totals and percentages
    ├─────────────────────────────────────┤
    │   DailyRecordStore / ORM models     │  ← atomic record operations
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the ORM for daily records; they go through
    DailyRecordService, which receives its store by constructor injection.
"""

__version__ = "1.0.0"
