"""
StorySnap Backend — Moderation Service (story status state machine)
=====================================================================

What:  Admin-gated status transitions for stories, plus the admin check.
Who:   Called by PATCH /api/admin/stories/{id} and POST /api/admin/check.
       StoryService also uses require_admin() for content edits.

State machine:

        ┌─────────┐  approve   ┌──────────┐
        │ pending │──────────▶│ approved │
        └─────────┘            └──────────┘
             │                   ▲     │
             │ reject     approve│     │reject
             ▼                   │     ▼
        ┌──────────┐◀────────────┴─────┘
        │ rejected │
        └──────────┘

    Once the acting identity is an admin any target state is allowed, including
    re-approving a rejected story or rejecting an approved one. Nothing ever
    moves a story back to pending.

Every transition is a single UPDATE ... RETURNING that touches only the
moderation columns, so it cannot clobber a concurrent upvote toggle.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storysnap.exceptions import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from storysnap.models.story import STATUS_APPROVED, STATUS_REJECTED, Story
from storysnap.models.user import User
from storysnap.services.user_service import user_service

logger = logging.getLogger(__name__)

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"

# action → resulting status
TRANSITIONS = {
    ACTION_APPROVE: STATUS_APPROVED,
    ACTION_REJECT: STATUS_REJECTED,
}


class ModerationService:

    async def check_admin(self, db: AsyncSession, firebase_uid: Optional[str]) -> bool:
        """
        Report whether an identity holds the admin role.

        Raises:
            ValidationError: identity missing
            NotFoundError:   identity unknown
        """
        if not firebase_uid:
            raise ValidationError(message="Firebase UID is required", field="firebaseUid")
        user = await user_service.find_by_uid(db, firebase_uid)
        if user is None:
            raise NotFoundError(resource="user", resource_id=firebase_uid)
        return user.is_admin

    async def require_admin(self, db: AsyncSession, identity: Optional[str]) -> User:
        """
        Resolve an identity and insist on the admin role.

        A missing or unknown identity is treated the same as a non-admin one,
        so callers cannot discover which uids exist.
        """
        user = await user_service.find_by_uid(db, identity) if identity else None
        if user is None or not user.is_admin:
            logger.warning("Rejected moderator action from identity=%s", identity or "<none>")
            raise AuthorizationError(identity=identity)
        return user

    async def transition(
        self,
        db: AsyncSession,
        story_id: UUID,
        action: Optional[str],
        acting_identity: Optional[str],
        rejection_reason: Optional[str] = None,
    ) -> Story:
        """
        Approve or reject a story.

        Flow:
            1. Resolve acting identity → AuthorizationError unless admin
            2. Validate action → ValidationError unless approve/reject
            3. UPDATE status, approved_by, approved_at, rejection_reason
               RETURNING the row → NotFoundError on zero rows

        A reject without a reason clears any reason stored by an earlier
        rejection; approving always clears it.
        """
        admin = await self.require_admin(db, acting_identity)

        new_status = TRANSITIONS.get(action or "")
        if new_status is None:
            raise ValidationError(
                message="Action must be 'approve' or 'reject'",
                field="action",
                context={"action": action},
            )

        reason = None
        if new_status == STATUS_REJECTED and rejection_reason and rejection_reason.strip():
            reason = rejection_reason.strip()

        stmt = (
            update(Story)
            .where(Story.id == story_id)
            .values(
                status=new_status,
                approved_by=admin.firebase_uid,
                approved_at=datetime.now(timezone.utc),
                rejection_reason=reason,
            )
            .returning(Story)
        )
        try:
            result = await db.execute(stmt)
            story = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error moderating story %s: %s", story_id, str(e))
            raise DatabaseError(
                message="Could not update the story. Please try again.",
                context={"story_id": str(story_id)},
            )

        if story is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))

        logger.info(
            "Story %s %s by %s",
            story_id,
            new_status,
            admin.firebase_uid,
        )
        return story


moderation_service = ModerationService()
