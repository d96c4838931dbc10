"""
StorySnap Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
Why:   Every write in StorySnap targets exactly one row (a story or a user),
       so a plain session-per-request with commit-on-success is all the
       transaction management the application needs.
How:   The engine pools asyncpg connections; get_db_session() yields one
       AsyncSession per request, commits when the handler returns and rolls
       back when it raises.
Who:   Route handlers receive the session through Depends(get_db_session) and
       pass it explicitly into the service layer.

Concurrency note:
    The upvote toggle relies on PostgreSQL's row lock for a single UPDATE
    statement (see StoryService.toggle_upvote). No application-level locking
    is done here.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storysnap.config import settings


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# expire_on_commit=False: story objects are serialized after the dependency
# commits, so attributes must stay loaded
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for the StorySnap ORM models (Story, User).

    Shares a single metadata object so Alembic autogenerate sees both tables.
    """
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handlers
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/stories/{story_id}")
        async def get_story(story_id: UUID, db: AsyncSession = Depends(get_db_session)):
            return await story_service.get_story(db, story_id)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close every pooled connection. Called from the lifespan shutdown."""
    await engine.dispose()
