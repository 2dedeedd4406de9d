"""
WaterTrack Backend: User Route Handlers
=======================================

What:  Profile reads and updates, avatar upload and serving, password
       validation and account deletion.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from watertrack.database import get_db_session
from watertrack.dependencies import get_current_user, get_daily_record_service
from watertrack.exceptions import WaterTrackError
from watertrack.models.user import User
from watertrack.schemas.common import ErrorResponse
from watertrack.schemas.user import (
    AccountDeletionResponse,
    AvatarResponse,
    PasswordRequest,
    PasswordValidationResponse,
    UserResponse,
    UserUpdateRequest,
)
from watertrack.services.avatar_service import avatar_service
from watertrack.services.daily_record_service import DailyRecordService
from watertrack.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["User"])


@router.get("/user/current", response_model=UserResponse, summary="Current user's profile")
async def get_current_profile(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.patch(
    "/user",
    response_model=UserResponse,
    responses={
        400: {"description": "Nothing to update", "model": ErrorResponse},
        401: {"description": "Old password is incorrect", "model": ErrorResponse},
        409: {"description": "Email already in use", "model": ErrorResponse},
    },
    summary="Update profile fields and/or password",
)
async def update_profile(
    body: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    updated = await user_service.update_profile(
        db,
        user,
        basic_info=body.basic_info.model_dump(exclude_none=True) if body.basic_info else None,
        security_credentials=(
            body.security_credentials.model_dump(exclude_none=True)
            if body.security_credentials
            else None
        ),
    )
    return UserResponse.model_validate(updated)


@router.patch(
    "/user/avatars",
    response_model=AvatarResponse,
    responses={400: {"description": "Invalid image", "model": ErrorResponse}},
    summary="Upload a new avatar",
)
async def upload_avatar(
    avatar: UploadFile = File(..., description="PNG, JPEG or WEBP image"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AvatarResponse:
    """
    The image is cropped to a square PNG. The previous uploaded avatar is
    removed only after the new URL is committed; if saving the URL fails,
    the freshly written file is removed instead.
    """
    content = await avatar.read()
    avatar_url = await avatar_service.save_avatar(avatar.filename or "", content)

    previous = user.avatar_url
    try:
        await user_service.update_avatar(db, user, avatar_url)
        await db.commit()
    except (WaterTrackError, SQLAlchemyError):
        await avatar_service.remove_previous(avatar_url)
        raise
    await avatar_service.remove_previous(previous)
    return AvatarResponse(avatar_url=avatar_url)


@router.get(
    "/avatars/{filename}",
    summary="Serve an uploaded avatar",
    responses={404: {"description": "Unknown avatar", "model": ErrorResponse}},
)
async def serve_avatar(filename: str) -> FileResponse:
    path = avatar_service.resolve(filename)
    return FileResponse(
        path=str(path),
        media_type="image/png",
        headers={"Cache-Control": "public, max-age=86400"},
    )


@router.post(
    "/user/validate",
    response_model=PasswordValidationResponse,
    responses={401: {"description": "Wrong password", "model": ErrorResponse}},
    summary="Confirm the password before deleting the account",
)
async def validate_password(
    body: PasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PasswordValidationResponse:
    await user_service.validate_password(db, user, body.password)
    return PasswordValidationResponse(message="Password is valid", is_password_correct=True)


@router.delete(
    "/user",
    response_model=AccountDeletionResponse,
    responses={401: {"description": "Password not validated", "model": ErrorResponse}},
    summary="Delete the account and all of its water records",
)
async def delete_account(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    records: DailyRecordService = Depends(get_daily_record_service),
) -> AccountDeletionResponse:
    email, name = user.email, user.name
    deleted = await user_service.delete_account(db, user, records)
    return AccountDeletionResponse(
        email=email, name=name, records_deleted=deleted, is_deleted=True
    )
