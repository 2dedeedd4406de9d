# Services package init
"""
WaterTrack Backend: Services Layer
==================================

What:  Business logic between the route handlers and the database.
How:   Routes resolve services through dependencies.py; services raise
       WaterTrackError subclasses and never build HTTP responses.

Service Inventory:
    - IntakeAggregator: pure aggregate math (totals, counts, percentage)
    - DailyRecordStore (abstract): atomic per-day record persistence
    - SqlDailyRecordStore: SQLAlchemy implementation with row locking
    - DailyRecordService: date normalization and intake workflows
    - MonthlyReportService: per-day summaries over a date range
    - UserService: registration, sessions, recovery, profile, deletion
    - AvatarService: avatar validation, cropping and storage
    - MailService: verification and recovery letters
    - security: bcrypt password hashing and JWT bearer tokens
"""
