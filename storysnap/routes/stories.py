"""
StorySnap Backend — Story Route Handlers
==========================================

What:  /api/stories endpoints: list, tags, create, detail, edit, outline, upvote.
How:   Thin handlers: parse the request, call StoryService with the session
       and the identity from the body, wrap the result in a response schema.

Feed filtering:
    `status` and `authorId` go into the SQL query. `q` and `tag` are applied
    afterwards by storysnap.services.feed over the full result, matching the
    feed page's behaviour.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storysnap.database import get_db_session
from storysnap.schemas.common import ErrorResponse
from storysnap.schemas.story import (
    StoryCreate,
    StoryEnvelope,
    StoryListResponse,
    StoryMutationResponse,
    StoryOutlineResponse,
    StoryResponse,
    StoryTagsResponse,
    UpvoteRequest,
    UpvoteResponse,
)
from storysnap.services.feed import collect_tags, filter_stories
from storysnap.services.outline import reading_time_minutes, table_of_contents
from storysnap.services.story_service import story_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Stories"])


@router.get(
    "/stories",
    response_model=StoryListResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="List stories, newest first",
)
async def list_stories(
    status: Optional[str] = Query(default=None, description="pending, approved or rejected"),
    author_id: Optional[str] = Query(default=None, alias="authorId"),
    q: Optional[str] = Query(default=None, description="Case-insensitive title/location search"),
    tag: Optional[str] = Query(default=None, description="Exact tag"),
    db: AsyncSession = Depends(get_db_session),
) -> StoryListResponse:
    """
    Without `status` every story is returned; the public feed passes
    status=approved, the admin queue status=pending.
    """
    stories = await story_service.list_stories(db, status=status, author_id=author_id)
    if q or tag:
        stories = filter_stories(stories, search=q or "", tag=tag)
    return StoryListResponse(stories=[StoryResponse.model_validate(s) for s in stories])


# Declared before /stories/{story_id} so "tags" is not parsed as an id
@router.get(
    "/stories/tags",
    response_model=StoryTagsResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Tags in use across stories",
)
async def list_story_tags(
    status: Optional[str] = Query(default=None, description="pending, approved or rejected"),
    db: AsyncSession = Depends(get_db_session),
) -> StoryTagsResponse:
    stories = await story_service.list_stories(db, status=status)
    return StoryTagsResponse(tags=collect_tags(stories))


@router.post(
    "/stories",
    response_model=StoryMutationResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Submit a story for moderation",
)
async def create_story(
    payload: StoryCreate,
    db: AsyncSession = Depends(get_db_session),
) -> StoryMutationResponse:
    story = await story_service.create_story(db, payload)
    return StoryMutationResponse(story=StoryResponse.model_validate(story))


@router.get(
    "/stories/{story_id}",
    response_model=StoryEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Get a single story",
)
async def get_story(
    story_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> StoryEnvelope:
    story = await story_service.get_story(db, story_id)
    return StoryEnvelope(story=StoryResponse.model_validate(story))


@router.patch(
    "/stories/{story_id}",
    response_model=StoryMutationResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Edit story content (admins only)",
)
async def update_story(
    story_id: UUID,
    body: Dict[str, Any] = Body(
        ...,
        description=(
            "editorUid plus any of: title, content, images, location, "
            "historicalPeriod, tags, audioUrl"
        ),
    ),
    db: AsyncSession = Depends(get_db_session),
) -> StoryMutationResponse:
    changes = dict(body)
    editor_uid = changes.pop("editorUid", None)
    editor_uid = changes.pop("editor_uid", None) or editor_uid
    story = await story_service.update_story(db, story_id, changes, editor_uid)
    return StoryMutationResponse(story=StoryResponse.model_validate(story))


@router.get(
    "/stories/{story_id}/outline",
    response_model=StoryOutlineResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Table of contents and reading time",
)
async def get_story_outline(
    story_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> StoryOutlineResponse:
    story = await story_service.get_story(db, story_id)
    return StoryOutlineResponse(
        toc=table_of_contents(story.content),
        reading_time_minutes=reading_time_minutes(story.content),
    )


@router.post(
    "/stories/{story_id}/upvote",
    response_model=UpvoteResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Toggle the caller's upvote",
)
async def toggle_upvote(
    story_id: UUID,
    payload: UpvoteRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UpvoteResponse:
    """
    Strict toggle: the first call adds the vote, the next removes it.
    The client reverts its optimistic count if this returns an error.
    """
    upvotes, has_upvoted = await story_service.toggle_upvote(db, story_id, payload.user_id)
    return UpvoteResponse(upvotes=upvotes, has_upvoted=has_upvoted)
