"""
StorySnap Backend — Story SQLAlchemy Model
============================================

What:  ORM model for the `stories` table.
Who:   StoryService (CRUD, upvotes, feed query), ModerationService (status
       transitions) and Alembic.

Table Design Rationale:
    - UUID primary key generated server-side
    - images: JSONB array of {"url", "public_id"} objects, order preserved
    - tags / upvoted_by: TEXT[] arrays. upvoted_by is NOT NULL DEFAULT '{}'
      so "no voters" is always an empty array, never NULL
    - upvotes: cached cardinality of upvoted_by. Both columns are only ever
      written together in one UPDATE (see StoryService.toggle_upvote)
    - status: CHECK constraint limits it to pending / approved / rejected
    - seq: monotonically increasing insertion counter, used to break ties
      between stories created in the same instant

    Index on (status, created_at DESC):
        Serves the public feed query (status='approved', newest first) and the
        admin moderation queue (status='pending').
    Index on author_id:
        Serves the profile page ("my stories").
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import BigInteger, CheckConstraint, Identity, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from storysnap.database import Base

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STORY_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class Story(Base):
    """
    A user-submitted historical narrative with moderation status and upvotes.

    Lifecycle:
        1. Created by any authenticated user (status = 'pending')
        2. Admin approves or rejects; approved_by / approved_at recorded.
           Admins may flip between approved and rejected afterwards.
        3. Any user toggles their upvote; admins may edit content
        4. Never deleted
    """

    __tablename__ = "stories"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        Identity(always=False),
        nullable=False,
        comment="Insertion order, tie-breaker for equal created_at",
    )

    # ── Content ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(300), nullable=False)

    # Markdown body; headings feed the table of contents
    content: Mapped[str] = mapped_column(Text, nullable=False)

    images: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
        comment="Ordered list of {url, public_id} image references",
    )

    location: Mapped[str] = mapped_column(String(300), nullable=False)
    historical_period: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    tags: Mapped[List[str]] = mapped_column(
        ARRAY(String),
        nullable=False,
        default=list,
        server_default=text("'{}'"),
    )

    audio_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # ── Author (denormalized, no foreign key) ─────────────────────────────
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    author_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # ── Upvotes ───────────────────────────────────────────────────────────
    upvotes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    upvoted_by: Mapped[List[str]] = mapped_column(
        ARRAY(String),
        nullable=False,
        default=list,
        server_default=text("'{}'"),
        comment="Voter identities; len(upvoted_by) == upvotes",
    )

    # ── Moderation ────────────────────────────────────────────────────────
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_PENDING,
        server_default=text("'pending'"),
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        comment="Identity of the admin who made the last moderation decision",
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_stories_status",
        ),
        Index("idx_stories_status_created_at", "status", text("created_at DESC")),
        Index("idx_stories_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Story(id={self.id}, status='{self.status}', "
            f"upvotes={self.upvotes})>"
        )
