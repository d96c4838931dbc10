"""
StorySnap Backend — User Route Handlers
=========================================

    POST /api/auth/sync    first sign-in creates the user row (role 'user')
    PUT  /api/user/update  profile rename
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storysnap.database import get_db_session
from storysnap.schemas.common import ErrorResponse
from storysnap.schemas.user import (
    SyncUserRequest,
    SyncUserResponse,
    UpdateUserRequest,
    UpdateUserResponse,
    UserProfile,
    UserResponse,
)
from storysnap.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


@router.post(
    "/auth/sync",
    response_model=SyncUserResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Create the user on first sign-in (idempotent)",
)
async def sync_user(
    payload: SyncUserRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SyncUserResponse:
    user = await user_service.sync_user(
        db,
        firebase_uid=payload.firebase_uid,
        email=payload.email,
        name=payload.name,
    )
    return SyncUserResponse(user=UserResponse.model_validate(user))


@router.put(
    "/user/update",
    response_model=UpdateUserResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Change the display name",
)
async def update_user(
    payload: UpdateUserRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UpdateUserResponse:
    user = await user_service.update_name(db, payload.firebase_uid, payload.name)
    return UpdateUserResponse(user=UserProfile(name=user.name, email=user.email))
