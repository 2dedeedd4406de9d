"""
WaterTrack Backend: User Service (Account Workflows)
====================================================

What:  Registration, email verification, login/logout, password recovery,
       profile updates, account deletion and bearer-token resolution.
How:   Works on the User ORM model through the request's AsyncSession;
       password hashing and tokens come from services/security.py, letters
       from services/mail_service.py.
Who:   Called by the /auth and /user route handlers and by the
       get_current_user dependency.

Session model:
    UserService is stateless; every method receives the request's session.
    Changes are flushed here and committed by get_db_session().

Account lifecycle:
    register ─▶ verify ─▶ login ─▶ (authenticated requests) ─▶ logout
                                 └▶ validate_password ─▶ delete_account
"""

import hashlib
import logging
from typing import Any, Dict, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from watertrack.config import settings
from watertrack.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from watertrack.models.user import User
from watertrack.services.daily_record_service import DailyRecordService
from watertrack.services.intake_aggregator import validate_goal
from watertrack.services.mail_service import Letter, mail_service
from watertrack.services.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

GENDERS = ("woman", "man")


def gravatar_url(email: str) -> str:
    """Default avatar for a new account."""
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
    return f"https://www.gravatar.com/avatar/{digest}?d=identicon"


class UserService:
    """
    Account workflows.

    Error Handling Strategy:
        Business-rule failures raise the matching WaterTrackError subclass.
        Database failures are wrapped in StoreError (hides driver details);
        a unique-email violation becomes ConflictError.
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    async def _find_by(self, db: AsyncSession, **criteria: Any) -> Optional[User]:
        query = select(User).filter_by(**criteria)
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by %s: %s", list(criteria), e)
            raise StoreError(context={"operation": "find_user"})
        return result.scalar_one_or_none()

    async def _flush(self, db: AsyncSession, operation: str) -> None:
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                message="Email already in use. Please try another or reset your "
                "password if this is your account.",
            )
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", operation, e, exc_info=True)
            raise StoreError(context={"operation": operation})

    async def get_by_id(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        return await self._find_by(db, id=user_id)

    # ── Registration / verification ───────────────────────────────────────

    async def register(self, db: AsyncSession, email: str, password: str) -> Tuple[User, Letter]:
        """
        Create an unverified account and its verification letter.

        The display name defaults to the local part of the email.

        Raises:
            ConflictError: the email is already registered
        """
        normalized = email.strip().lower()
        if await self._find_by(db, email=normalized) is not None:
            raise ConflictError(
                message="Email already in use. Please try another or reset your "
                "password if this is your account.",
                context={"email": normalized},
            )

        user = User(
            email=normalized,
            password_hash=hash_password(password),
            name=normalized.split("@")[0],
            gender="woman",
            daily_water_goal=settings.default_daily_water_goal,
            avatar_url=gravatar_url(normalized),
            verify=False,
            verification_token=uuid4().hex,
        )
        db.add(user)
        await self._flush(db, "register")

        letter = mail_service.compose_verification_letter(user.email, user.verification_token)
        mail_service.deliver(letter)
        logger.info("Registered user %s", user.id)
        return user, letter

    async def verify(self, db: AsyncSession, verification_token: str) -> User:
        user = await self._find_by(db, verification_token=verification_token)
        if user is None:
            raise NotFoundError(resource="user")

        user.verify = True
        user.verification_token = None
        await self._flush(db, "verify")
        logger.info("Verified user %s", user.id)
        return user

    async def resend_verification(self, db: AsyncSession, email: str) -> Letter:
        """
        Raises:
            NotFoundError: unknown email
            ValidationError: the account is already verified
        """
        user = await self._find_by(db, email=email.strip().lower())
        if user is None:
            raise NotFoundError(resource="user")
        if user.verify:
            raise ValidationError(message="Verification has already been passed", field="email")

        if not user.verification_token:
            user.verification_token = uuid4().hex
            await self._flush(db, "resend_verification")

        letter = mail_service.compose_verification_letter(user.email, user.verification_token)
        mail_service.deliver(letter)
        return letter

    # ── Sessions ──────────────────────────────────────────────────────────

    async def login(self, db: AsyncSession, email: str, password: str) -> User:
        """
        Check credentials and issue a bearer token.

        The token is stored on the user; only the most recent token is valid.
        A new login also resets the delete-account password proof.

        Raises:
            AuthenticationError: unknown email, wrong password or unverified email
        """
        user = await self._find_by(db, email=email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError(message="Email or password is wrong")
        if not user.verify:
            raise AuthenticationError(message="Your email is not verified")

        user.token = create_access_token(user.id, user.email)
        user.is_password_verified = False
        await self._flush(db, "login")
        logger.info("User %s logged in", user.id)
        return user

    async def logout(self, db: AsyncSession, user: User) -> None:
        user.token = None
        await self._flush(db, "logout")
        logger.info("User %s logged out", user.id)

    async def authenticate(self, db: AsyncSession, token: str) -> User:
        """
        Resolve a bearer token to its user.

        The token must decode and must equal the token stored at login, so
        a logged-out token is rejected even before it expires.
        """
        payload = decode_access_token(token)
        if payload is None:
            raise AuthenticationError()
        try:
            user_id = UUID(payload["sub"])
        except ValueError:
            raise AuthenticationError()

        user = await self.get_by_id(db, user_id)
        if user is None or user.token != token:
            raise AuthenticationError()
        return user

    # ── Password recovery ─────────────────────────────────────────────────

    async def request_password_recovery(self, db: AsyncSession, email: str) -> Letter:
        user = await self._find_by(db, email=email.strip().lower())
        if user is None:
            raise NotFoundError(resource="user", context={"email": email})

        user.password_recovery_token = uuid4().hex
        await self._flush(db, "request_password_recovery")

        letter = mail_service.compose_recovery_letter(user.email, user.password_recovery_token)
        mail_service.deliver(letter)
        return letter

    async def recover_password(self, db: AsyncSession, recovery_token: str, password: str) -> None:
        user = await self._find_by(db, password_recovery_token=recovery_token)
        if user is None:
            raise NotFoundError(resource="user")

        user.password_hash = hash_password(password)
        user.password_recovery_token = None
        # Existing sessions end with the old password
        user.token = None
        await self._flush(db, "recover_password")
        logger.info("Password recovered for user %s", user.id)

    # ── Profile ───────────────────────────────────────────────────────────

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        basic_info: Optional[Dict[str, Any]] = None,
        security_credentials: Optional[Dict[str, Any]] = None,
    ) -> User:
        """
        Apply profile fields and, optionally, a password change.

        basic_info may hold name, gender, email. security_credentials must
        hold both oldPassword and newPassword; the old one is checked.

        Raises:
            ValidationError: nothing to update, bad gender, incomplete credentials
            AuthenticationError: old password is incorrect
            ConflictError: the new email belongs to another account
        """
        basic_info = {k: v for k, v in (basic_info or {}).items() if v is not None}
        security_credentials = {
            k: v for k, v in (security_credentials or {}).items() if v is not None
        }
        if not basic_info and not security_credentials:
            raise ValidationError(message="Body must have at least one field")

        if "gender" in basic_info and basic_info["gender"] not in GENDERS:
            raise ValidationError(message="Gender must be 'woman' or 'man'", field="gender")

        if security_credentials:
            old_password = security_credentials.get("old_password")
            new_password = security_credentials.get("new_password")
            if not old_password or not new_password:
                raise ValidationError(
                    message="Both oldPassword and newPassword are required",
                    field="securityCredentials",
                )
            if not verify_password(old_password, user.password_hash):
                raise AuthenticationError(
                    message="Your old password is incorrect. Please try again"
                )
            user.password_hash = hash_password(new_password)

        if "email" in basic_info:
            email = basic_info["email"].strip().lower()
            if email != user.email:
                existing = await self._find_by(db, email=email)
                if existing is not None:
                    raise ConflictError(message="Email already in use", context={"email": email})
                user.email = email
        if "name" in basic_info:
            user.name = basic_info["name"]
        if "gender" in basic_info:
            user.gender = basic_info["gender"]

        await self._flush(db, "update_profile")
        return user

    async def update_avatar(self, db: AsyncSession, user: User, avatar_url: str) -> User:
        user.avatar_url = avatar_url
        await self._flush(db, "update_avatar")
        return user

    async def change_daily_goal(self, db: AsyncSession, user: User, goal: int) -> User:
        """New default snapshot for days created from now on."""
        validate_goal(goal)
        user.daily_water_goal = goal
        await self._flush(db, "change_daily_goal")
        return user

    # ── Account deletion ──────────────────────────────────────────────────

    async def validate_password(self, db: AsyncSession, user: User, password: str) -> None:
        """Records the password proof required by delete_account()."""
        if not verify_password(password, user.password_hash):
            raise AuthenticationError(message="You don't have permissions to delete this account")
        user.is_password_verified = True
        await self._flush(db, "validate_password")

    async def delete_account(
        self, db: AsyncSession, user: User, records: DailyRecordService
    ) -> int:
        """
        Delete the user and every daily record they own.

        Returns:
            Number of deleted daily records

        Raises:
            AuthenticationError: validate_password() was not called since login
        """
        if not user.is_password_verified:
            raise AuthenticationError(message="You don't have permissions to delete this account")

        deleted = await records.delete_all(user.id)
        try:
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting user %s: %s", user.id, e, exc_info=True)
            raise StoreError(context={"operation": "delete_account"})

        logger.info("Deleted user %s and %d daily records", user.id, deleted)
        return deleted


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
