"""
StorySnap Backend — Application Package
=========================================

What: JSON API for StorySnap, where users submit historical-place stories,
      admins moderate them, and approved stories are browsed, upvoted and
      translated.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← moderation, upvotes, feed,
    │                                     │    translation, uploads
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Identities (the external auth provider's uid) arrive in request bodies
    and are passed explicitly into every service call. There is no
    current-user global.
"""

__version__ = "1.0.0"
