"""
StorySnap Backend — Shared Pydantic Schemas
=============================================

What:  The camelCase base model plus the schemas that are not tied to a single
       resource: errors, health, translation and image upload.
Why:   The browser client speaks camelCase JSON (`hasUpvoted`, `publicId`),
       while Python code uses snake_case attributes. An alias generator
       bridges the two in one place.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every API schema.

    - Serializes with camelCase aliases (FastAPI uses by_alias by default)
    - Accepts either camelCase or snake_case on input
    - Builds from ORM objects (from_attributes)
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Error / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error envelope for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "Unauthorized",
            "details": null,
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Any] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    translation: str = Field(description="Translation proxy: configured, not_configured")
    image_backend: str = Field(description="Active image backend: cloudinary or local")
    uptime_seconds: float = Field(description="Seconds since service started")


# ══════════════════════════════════════════════════════════════════════════
# Translation
# ══════════════════════════════════════════════════════════════════════════


class TranslateRequest(CamelModel):
    """
    Body of POST /api/translate.

    All fields are optional at the schema level so that a missing
    targetLanguage produces the service's 400 message instead of a generic
    schema error.
    """
    text: Optional[str] = Field(default=None, description="Markdown story body")
    title: Optional[str] = Field(default=None, description="Story title")
    target_language: Optional[str] = Field(default=None, description="e.g. 'Spanish' or 'es'")


class TranslateResponse(CamelModel):
    translated_text: Optional[str] = None
    translated_title: Optional[str] = None
    translated_contents_label: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Image Upload
# ══════════════════════════════════════════════════════════════════════════


class UploadRequest(CamelModel):
    image: Optional[str] = Field(
        default=None,
        description="Base64 image bytes, optionally as a data URI (data:image/png;base64,...)",
    )


class UploadResponse(CamelModel):
    success: bool = True
    url: str = Field(description="Public URL of the stored image")
    public_id: str = Field(description="Storage identifier used to reference or delete the image")
