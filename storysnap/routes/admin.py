"""
StorySnap Backend — Admin Route Handlers
==========================================

What:  Moderation endpoints.
    - PATCH /api/admin/stories/{id}  approve / reject (admins only)
    - POST  /api/admin/check         does this identity hold the admin role?

The acting identity travels in the request body (`adminUid`, `firebaseUid`)
and is handed to ModerationService as an argument.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storysnap.database import get_db_session
from storysnap.schemas.common import ErrorResponse
from storysnap.schemas.story import ModerationRequest, StoryMutationResponse, StoryResponse
from storysnap.schemas.user import AdminCheckRequest, AdminCheckResponse
from storysnap.services.moderation_service import moderation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.patch(
    "/stories/{story_id}",
    response_model=StoryMutationResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Approve or reject a story",
)
async def moderate_story(
    story_id: UUID,
    payload: ModerationRequest,
    db: AsyncSession = Depends(get_db_session),
) -> StoryMutationResponse:
    story = await moderation_service.transition(
        db,
        story_id=story_id,
        action=payload.action,
        acting_identity=payload.admin_uid,
        rejection_reason=payload.rejection_reason,
    )
    return StoryMutationResponse(story=StoryResponse.model_validate(story))


@router.post(
    "/check",
    response_model=AdminCheckResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Check whether an identity is an admin",
)
async def check_admin(
    payload: AdminCheckRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AdminCheckResponse:
    is_admin = await moderation_service.check_admin(db, payload.firebase_uid)
    return AdminCheckResponse(is_admin=is_admin)
