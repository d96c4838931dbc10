"""
StorySnap Backend — User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table.
Why:   Holds the role that gates moderation. Everything else about a person
       (password, sessions, tokens) lives with the external auth provider.

Identity:
    firebase_uid is the opaque identifier issued by the auth provider. It and
    email carry unique constraints; a second sign-in with the same uid
    returns the existing row (see UserService.sync_user).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from storysnap.database import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(Base):
    """A signed-in person. Created on first sign-in, renamed from the profile page, never deleted."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    firebase_uid: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Promotion to admin happens out of band (directly in the database)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ROLE_USER,
        server_default=text("'user'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"<User(firebase_uid='{self.firebase_uid}', role='{self.role}')>"
