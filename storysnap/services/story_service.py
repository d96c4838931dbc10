"""
StorySnap Backend — Story Service (CRUD, feed query, upvote toggle)
=====================================================================

What:  Business logic for story records.
Who:   Called by the /api/stories route handlers.

Operations:
    create_story()   status forced to 'pending', empty voter set
    get_story()      NotFoundError when the id does not resolve
    list_stories()   status / author filter, newest first
    update_story()   admin-only content edit over a whitelist of fields
    toggle_upvote()  strict per-voter toggle in ONE conditional UPDATE

Upvote atomicity:
    toggle_upvote() never reads the count into Python. It issues

        UPDATE stories
           SET upvoted_by = CASE WHEN :voter = ANY(upvoted_by)
                                 THEN array_remove(upvoted_by, :voter)
                                 ELSE array_append(upvoted_by, :voter) END,
               upvotes    = CASE WHEN :voter = ANY(upvoted_by)
                                 THEN upvotes - 1
                                 ELSE upvotes + 1 END
         WHERE id = :id
     RETURNING upvotes, :voter = ANY(upvoted_by)

    PostgreSQL takes the row lock for the UPDATE and, under READ COMMITTED,
    re-evaluates both CASE expressions against the latest committed row
    version when it had to wait. Concurrent toggles on one story therefore
    serialize, and `upvotes == cardinality(upvoted_by)` holds after every
    commit. RETURNING sees the post-update row, so the boolean is the new
    membership. A missing story matches zero rows: nothing is created.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import String, any_, case, func, literal, select, update
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storysnap.exceptions import (
    DatabaseError,
    NotFoundError,
    ValidationError,
    disallowed_fields_error,
)
from storysnap.models.story import STATUS_PENDING, STORY_STATUSES, Story
from storysnap.schemas.story import StoryCreate, StoryUpdate
from storysnap.services.moderation_service import moderation_service

logger = logging.getLogger(__name__)

# Keys accepted by PATCH /api/stories/{id}, camelCase (wire) and snake_case.
# status, upvotes, upvotedBy, authorId, authorName and the moderation fields
# are deliberately absent: status only changes through ModerationService.
EDITABLE_FIELDS = frozenset({
    "title",
    "content",
    "images",
    "location",
    "historicalPeriod",
    "historical_period",
    "tags",
    "audioUrl",
    "audio_url",
})


class StoryService:

    async def create_story(self, db: AsyncSession, payload: StoryCreate) -> Story:
        """
        Persist a new submission.

        Whatever the client sent, the story starts as pending with no votes.
        """
        story = Story(
            title=payload.title,
            content=payload.content,
            images=[image.model_dump() for image in payload.images],
            author_id=payload.author_id,
            author_name=payload.author_name,
            location=payload.location,
            historical_period=payload.historical_period,
            tags=list(payload.tags),
            audio_url=payload.audio_url,
            status=STATUS_PENDING,
            upvotes=0,
            upvoted_by=[],
        )
        db.add(story)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating story: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the story. Please try again.",
                context={"error_type": type(e).__name__},
            )
        logger.info("Story %s created by %s (status=pending)", story.id, story.author_id)
        return story

    async def get_story(self, db: AsyncSession, story_id: UUID) -> Story:
        try:
            result = await db.execute(select(Story).where(Story.id == story_id))
            story = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching story %s: %s", story_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the story. Please try again.",
                context={"story_id": str(story_id)},
            )
        if story is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))
        return story

    async def list_stories(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        author_id: Optional[str] = None,
    ) -> List[Story]:
        """
        Feed query: optional status and author filters, newest first.

        No status filter means every status is returned. Public callers must
        pass status='approved' explicitly.

        Query plan (public feed):
            SELECT ... WHERE status = 'approved'
            ORDER BY created_at DESC, seq DESC
            → idx_stories_status_created_at
        """
        if status and status not in STORY_STATUSES:
            raise ValidationError(
                message=f"Unknown status '{status}'. Must be one of: {', '.join(STORY_STATUSES)}",
                field="status",
            )

        query = select(Story)
        if status:
            query = query.where(Story.status == status)
        if author_id:
            query = query.where(Story.author_id == author_id)
        query = query.order_by(Story.created_at.desc(), Story.seq.desc())

        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing stories: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve stories. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_story(
        self,
        db: AsyncSession,
        story_id: UUID,
        changes: Dict[str, Any],
        editor_identity: Optional[str],
    ) -> Story:
        """
        Moderator content edit.

        Validation order:
            1. editor must be an admin        → AuthorizationError (403)
            2. at least one field             → ValidationError (400)
            3. every key in EDITABLE_FIELDS   → ValidationError naming the rest
            4. per-field schema validation    → ValidationError with errors
            5. UPDATE ... RETURNING           → NotFoundError on zero rows
        """
        await moderation_service.require_admin(db, editor_identity)

        if not changes:
            raise ValidationError(message="No fields to update")

        disallowed = [key for key in changes if key not in EDITABLE_FIELDS]
        if disallowed:
            raise disallowed_fields_error(disallowed)

        try:
            validated = StoryUpdate.model_validate(changes)
        except PydanticValidationError as e:
            errors = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationError(
                message="Invalid story fields",
                field=errors[0]["field"] if errors else None,
                context={"errors": errors},
            )

        values = validated.model_dump(exclude_unset=True)

        stmt = (
            update(Story)
            .where(Story.id == story_id)
            .values(**values)
            .returning(Story)
        )
        try:
            result = await db.execute(stmt)
            story = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error updating story %s: %s", story_id, str(e))
            raise DatabaseError(
                message="Could not update the story. Please try again.",
                context={"story_id": str(story_id)},
            )
        if story is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))

        logger.info("Story %s edited by %s: %s", story_id, editor_identity, sorted(values))
        return story

    async def toggle_upvote(
        self,
        db: AsyncSession,
        story_id: UUID,
        voter_id: Optional[str],
    ) -> Tuple[int, bool]:
        """
        Flip one voter's upvote on a story.

        Returns:
            (upvotes, has_upvoted) after the toggle. Calling twice with the same
            voter always yields opposite booleans and the original count.

        Raises:
            ValidationError: voter identity missing or blank
            NotFoundError:   story does not exist (nothing is written)
        """
        if not voter_id or not voter_id.strip():
            raise ValidationError(message="User ID is required", field="userId")

        voter = literal(voter_id, String)
        is_member = voter == any_(Story.upvoted_by)

        stmt = (
            update(Story)
            .where(Story.id == story_id)
            .values(
                upvoted_by=case(
                    (is_member, func.array_remove(Story.upvoted_by, voter, type_=ARRAY(String))),
                    else_=func.array_append(Story.upvoted_by, voter, type_=ARRAY(String)),
                ),
                upvotes=case(
                    (is_member, Story.upvotes - 1),
                    else_=Story.upvotes + 1,
                ),
            )
            .returning(Story.upvotes, is_member.label("has_upvoted"))
            .execution_options(synchronize_session=False)
        )

        try:
            result = await db.execute(stmt)
            row = result.one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error toggling upvote on %s: %s", story_id, str(e))
            raise DatabaseError(
                message="Failed to toggle upvote. Please try again.",
                context={"story_id": str(story_id)},
            )

        if row is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))

        upvotes, has_upvoted = row[0], bool(row[1])
        logger.debug(
            "Upvote toggled on %s by %s: upvotes=%d has_upvoted=%s",
            story_id,
            voter_id,
            upvotes,
            has_upvoted,
        )
        return upvotes, has_upvoted


story_service = StoryService()
