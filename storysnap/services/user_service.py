"""
StorySnap Backend — User Service
==================================

What:  Sign-in sync, profile rename and identity lookup.
Who:   Called by the /api/auth, /api/user and /api/admin routes, and by
       ModerationService / StoryService to resolve an acting identity.

Sync is an upsert-by-identity: the first sign-in creates the row with role
'user', later sign-ins return the stored row unchanged (an email or name
change at the auth provider does not overwrite it).
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storysnap.exceptions import DatabaseError, NotFoundError, ValidationError
from storysnap.models.user import ROLE_USER, User

logger = logging.getLogger(__name__)


class UserService:

    async def find_by_uid(self, db: AsyncSession, firebase_uid: str) -> Optional[User]:
        """Return the user for an identity, or None."""
        try:
            result = await db.execute(select(User).where(User.firebase_uid == firebase_uid))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %s: %s", firebase_uid, str(e))
            raise DatabaseError(
                message="Could not look up the user. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def sync_user(
        self,
        db: AsyncSession,
        firebase_uid: str,
        email: str,
        name: str,
    ) -> User:
        """
        Create the user on first sign-in, otherwise return the existing record.

        Raises:
            ValidationError: email already belongs to another identity
            DatabaseError:   unexpected store failure
        """
        existing = await self.find_by_uid(db, firebase_uid)
        if existing is not None:
            return existing

        user = User(firebase_uid=firebase_uid, email=email, name=name, role=ROLE_USER)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Either a concurrent sync for the same uid won, or the email is
            # taken by a different identity
            await db.rollback()
            winner = await self.find_by_uid(db, firebase_uid)
            if winner is not None:
                return winner
            raise ValidationError(
                message="Email is already registered to another account",
                field="email",
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating user %s: %s", firebase_uid, str(e))
            raise DatabaseError(
                message="Could not sync the user. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Created user %s", firebase_uid)
        return user

    async def update_name(
        self,
        db: AsyncSession,
        firebase_uid: Optional[str],
        name: Optional[str],
    ) -> User:
        """
        Change a user's display name.

        Raises:
            ValidationError: either field missing or blank
            NotFoundError:   identity unknown
        """
        if not firebase_uid or not name or not name.strip():
            raise ValidationError(message="Firebase UID and name are required")

        user = await self.find_by_uid(db, firebase_uid)
        if user is None:
            raise NotFoundError(resource="user", resource_id=firebase_uid)

        user.name = name.strip()
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error renaming user %s: %s", firebase_uid, str(e))
            raise DatabaseError(
                message="Could not update the user. Please try again.",
                context={"error_type": type(e).__name__},
            )
        logger.info("User %s renamed", firebase_uid)
        return user


user_service = UserService()
