"""
WaterTrack Backend: Authentication Route Handlers
=================================================

What:  Registration, email verification, login/logout and password recovery.
How:   Delegates to UserService; letters are echoed back only when
       MAIL_ECHO_LETTERS is enabled.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from watertrack.config import settings
from watertrack.database import get_db_session
from watertrack.dependencies import get_current_user
from watertrack.models.user import User
from watertrack.schemas.common import ErrorResponse, LetterResponse, MessageResponse
from watertrack.schemas.user import (
    CredentialsRequest,
    EmailRequest,
    LetterMessageResponse,
    LoginResponse,
    PasswordRequest,
    RegisterResponse,
    UserResponse,
)
from watertrack.services.mail_service import Letter
from watertrack.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _echo(letter: Letter):
    return LetterResponse(**letter.as_dict()) if settings.mail_echo_letters else None


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    responses={409: {"description": "Email already in use", "model": ErrorResponse}},
    summary="Create an account and send the verification letter",
)
async def register(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    user, letter = await user_service.register(db, body.email, body.password)
    return RegisterResponse(email=user.email, letter=_echo(letter))


@router.get(
    "/verify/{verification_token}",
    response_model=MessageResponse,
    responses={404: {"description": "Unknown token", "model": ErrorResponse}},
    summary="Confirm an email address",
)
async def verify(
    verification_token: str,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.verify(db, verification_token)
    return MessageResponse(message="Verification successful")


@router.post(
    "/verify",
    response_model=LetterMessageResponse,
    responses={
        400: {"description": "Already verified", "model": ErrorResponse},
        404: {"description": "Unknown email", "model": ErrorResponse},
    },
    summary="Resend the verification letter",
)
async def resend_verification(
    body: EmailRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LetterMessageResponse:
    letter = await user_service.resend_verification(db, body.email)
    return LetterMessageResponse(message="Verification email sent", letter=_echo(letter))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Wrong credentials or unverified", "model": ErrorResponse}},
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    user = await user_service.login(db, body.email, body.password)
    return LoginResponse(token=user.token, user=UserResponse.model_validate(user))


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Invalidate the current bearer token",
)
async def logout(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await user_service.logout(db, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/recover-password",
    response_model=LetterMessageResponse,
    responses={404: {"description": "Unknown email", "model": ErrorResponse}},
    summary="Send the password recovery letter",
)
async def request_password_recovery(
    body: EmailRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LetterMessageResponse:
    letter = await user_service.request_password_recovery(db, body.email)
    return LetterMessageResponse(
        message="Password reset instructions have been sent to your email. "
        "Please check your inbox.",
        letter=_echo(letter),
    )


@router.post(
    "/recover-password/{password_recovery_token}",
    response_model=MessageResponse,
    responses={404: {"description": "Unknown token", "model": ErrorResponse}},
    summary="Set a new password with a recovery token",
)
async def recover_password(
    password_recovery_token: str,
    body: PasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.recover_password(db, password_recovery_token, body.password)
    return MessageResponse(message="Password changed successfully.")
