"""
StorySnap Backend — Story Request/Response Schemas
====================================================

What:  API contracts for stories, upvotes, moderation and the story outline.
Why:   Schemas are separate from the SQLAlchemy model so the wire format
       (camelCase, `publicId`) can differ from the column layout and so the
       create endpoint cannot smuggle in moderation fields.

Create vs. update:
    StoryCreate ignores unknown keys, which makes a client-supplied `status`
    harmless (the service forces `pending`). StoryUpdate is only used after
    StoryService has rejected non-editable keys; see EDITABLE_FIELDS there.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from storysnap.schemas.common import CamelModel


class StoryImage(CamelModel):
    url: str = Field(min_length=1)
    public_id: str = Field(min_length=1)


class StoryResponse(CamelModel):
    """Full story representation returned by every story endpoint."""
    id: uuid.UUID
    title: str
    content: str
    images: List[StoryImage] = Field(default_factory=list)
    author_id: str
    author_name: str
    location: str
    historical_period: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    audio_url: Optional[str] = None
    upvotes: int = 0
    upvoted_by: List[str] = Field(default_factory=list)
    status: str
    rejection_reason: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime


class StoryListResponse(CamelModel):
    stories: List[StoryResponse]


class StoryTagsResponse(CamelModel):
    """Sorted unique tags across the matching stories, for the feed's tag picker."""
    tags: List[str]


class StoryEnvelope(CamelModel):
    story: StoryResponse


class StoryMutationResponse(CamelModel):
    success: bool = True
    story: StoryResponse


class StoryCreate(CamelModel):
    """Body of POST /api/stories."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    images: List[StoryImage] = Field(default_factory=list)
    author_id: str = Field(min_length=1, max_length=128)
    author_name: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=300)
    historical_period: Optional[str] = Field(default=None, max_length=200)
    tags: List[str] = Field(default_factory=list)
    audio_url: Optional[str] = None

    @field_validator("title", "content", "author_id", "author_name", "location")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def tags_not_blank(cls, v: List[str]) -> List[str]:
        if any(not tag.strip() for tag in v):
            raise ValueError("tags must be non-empty strings")
        return v


class StoryUpdate(CamelModel):
    """
    Validated editable subset for PATCH /api/stories/{id}.

    Every field is optional; only keys present in the request are applied
    (model_dump(exclude_unset=True)).
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = Field(default=None, min_length=1)
    images: Optional[List[StoryImage]] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=300)
    historical_period: Optional[str] = Field(default=None, max_length=200)
    tags: Optional[List[str]] = None
    audio_url: Optional[str] = None

    @field_validator("title", "content", "location")
    @classmethod
    def required_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("cannot be cleared")
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("images", "tags")
    @classmethod
    def list_not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null; send an empty list instead")
        return v

    @field_validator("tags")
    @classmethod
    def tags_not_blank(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v and any(not tag.strip() for tag in v):
            raise ValueError("tags must be non-empty strings")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Upvotes
# ══════════════════════════════════════════════════════════════════════════


class UpvoteRequest(CamelModel):
    user_id: Optional[str] = Field(default=None, description="Identity of the voter")


class UpvoteResponse(CamelModel):
    upvotes: int
    has_upvoted: bool = Field(description="Membership after this toggle")


# ══════════════════════════════════════════════════════════════════════════
# Moderation
# ══════════════════════════════════════════════════════════════════════════


class ModerationRequest(CamelModel):
    """Body of PATCH /api/admin/stories/{id}."""
    action: Optional[str] = Field(default=None, description="approve or reject")
    admin_uid: Optional[str] = Field(default=None, description="Identity of the acting admin")
    rejection_reason: Optional[str] = Field(default=None, description="Only used when rejecting")


# ══════════════════════════════════════════════════════════════════════════
# Outline
# ══════════════════════════════════════════════════════════════════════════


class TocItem(CamelModel):
    id: str = Field(description="Anchor slug derived from the heading text")
    text: str
    level: int = Field(ge=1, le=3)


class StoryOutlineResponse(CamelModel):
    toc: List[TocItem]
    reading_time_minutes: int
