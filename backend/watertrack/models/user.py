"""
WaterTrack Backend: User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by UserService for account flows and by the bearer-token
       dependency to resolve the acting user.

Column notes:
    - email is stored lower-cased and is unique.
    - token holds the JWT issued at the last login; a request is authorized
      only while its bearer token equals this value (logout clears it).
    - daily_water_goal is the default snapshot copied into new daily records.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from watertrack.database import Base


class User(Base):
    """
    Registered account.

    Lifecycle:
        1. Created unverified by POST /auth/register (verification_token set)
        2. Verified through the emailed link (verification_token cleared)
        3. token set on login, cleared on logout
        4. Deleted by DELETE /user after password validation, together with
           every daily water record the user owns
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Profile ───────────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    gender: Mapped[str] = mapped_column(String(10), nullable=False, default="woman")
    daily_water_goal: Mapped[int] = mapped_column(Integer, nullable=False, default=2000)
    avatar_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # ── Session / verification state ──────────────────────────────────────
    token: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    verify: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verification_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    password_recovery_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    # Set by POST /user/validate; required before the account can be deleted
    is_password_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', verify={self.verify})>"
