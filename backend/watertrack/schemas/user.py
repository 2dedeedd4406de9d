"""
WaterTrack Backend: Account Schemas
===================================

What:  Request bodies and responses for /auth and /user.
Who:   Used by routes/auth.py and routes/user.py.
"""

import uuid
from typing import Literal, Optional

from pydantic import EmailStr, Field, model_validator

from watertrack.schemas.common import CamelModel, LetterResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CredentialsRequest(CamelModel):
    """Body of POST /auth/register and POST /auth/login."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class EmailRequest(CamelModel):
    email: EmailStr


class PasswordRequest(CamelModel):
    password: str = Field(min_length=1, max_length=72)


class BasicInfo(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    gender: Optional[Literal["woman", "man"]] = None
    email: Optional[EmailStr] = None


class SecurityCredentials(CamelModel):
    old_password: Optional[str] = Field(default=None, max_length=72)
    new_password: Optional[str] = Field(default=None, min_length=1, max_length=72)

    @model_validator(mode="after")
    def old_password_requires_new(self) -> "SecurityCredentials":
        if self.old_password and not self.new_password:
            raise ValueError("newPassword is required together with oldPassword")
        return self


class UserUpdateRequest(CamelModel):
    """Body of PATCH /user; at least one group must carry a value."""

    basic_info: Optional[BasicInfo] = None
    security_credentials: Optional[SecurityCredentials] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(CamelModel):
    id: uuid.UUID
    email: str
    name: str
    gender: str
    daily_water_goal: int
    avatar_url: str = Field(alias="avatarURL")


class RegisterResponse(CamelModel):
    email: str
    letter: Optional[LetterResponse] = None


class LoginResponse(CamelModel):
    token: str
    user: UserResponse


class LetterMessageResponse(CamelModel):
    message: str
    letter: Optional[LetterResponse] = None


class AvatarResponse(CamelModel):
    avatar_url: str = Field(alias="avatarURL")


class PasswordValidationResponse(CamelModel):
    message: str
    is_password_correct: bool


class AccountDeletionResponse(CamelModel):
    email: str
    name: str
    records_deleted: int
    is_deleted: bool
