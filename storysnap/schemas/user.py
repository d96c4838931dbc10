"""
StorySnap Backend — User Request/Response Schemas
===================================================

Identity fields are named after the auth provider (`firebaseUid`) because that
is what the browser client sends.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from storysnap.schemas.common import CamelModel


class UserResponse(CamelModel):
    firebase_uid: str
    email: str
    name: str
    role: str
    created_at: datetime


class SyncUserRequest(CamelModel):
    firebase_uid: str = Field(min_length=1, max_length=128)
    email: str = Field(min_length=3, max_length=320)
    name: str = Field(min_length=1, max_length=200)


class SyncUserResponse(CamelModel):
    success: bool = True
    user: UserResponse


class UpdateUserRequest(CamelModel):
    firebase_uid: Optional[str] = None
    name: Optional[str] = None


class UserProfile(CamelModel):
    name: str
    email: str


class UpdateUserResponse(CamelModel):
    success: bool = True
    user: UserProfile


class AdminCheckRequest(CamelModel):
    firebase_uid: Optional[str] = None


class AdminCheckResponse(CamelModel):
    is_admin: bool
