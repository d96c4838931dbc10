"""
StorySnap Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for every failure class the API exposes.
Why:   Services raise domain errors; global handlers in main.py map them to
       HTTP status codes and the JSON error envelope. Routes stay free of
       try/except blocks.
How:   Each exception carries a user-facing message and a context dict.
       Context is logged server-side; only some handlers return it as
       `details`.

Exception Hierarchy:
    StorySnapError (base)
    ├── ValidationError       → 400 Bad Request (missing/invalid field)
    ├── AuthorizationError    → 403 Forbidden (non-admin moderator action)
    ├── NotFoundError         → 404 Not Found (unresolvable story/user id)
    ├── ConfigurationError    → 500 (missing external-service credential)
    ├── UpstreamServiceError  → 500 with details (Gemini / Cloudinary failed)
    ├── ImageStorageError     → 500 (local image storage I/O failed)
    └── DatabaseError         → 500 (unexpected store failure, details hidden)
"""

from typing import Any, Dict, List, Optional


class StorySnapError(Exception):
    """
    Base exception for all StorySnap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(StorySnapError):
    """
    Raised when client input fails a business-rule check.

    When:  Missing userId on upvote, blank display name, unknown PATCH field,
           translate without targetLanguage, undecodable image payload.
    HTTP:  400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Fields cannot be updated: status",
            "details": {"field": "status", "disallowed": ["status"]}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthorizationError(StorySnapError):
    """
    Raised when an identity without the admin role attempts a moderator action.

    HTTP:  403 Forbidden

    The story is never touched when this is raised: the role check runs
    before any UPDATE is issued.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        identity: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if identity:
            ctx["identity"] = identity
        super().__init__(message=message, context=ctx)


class NotFoundError(StorySnapError):
    """
    Raised when a requested story or user does not exist.

    HTTP:  404 Not Found

    SQLAlchemy returns None (or zero rows) for missing records; the service
    layer converts that into this exception.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConfigurationError(StorySnapError):
    """
    Raised when an external-service credential is missing.

    HTTP:  500 Internal Server Error

    Raised before any network call is attempted, e.g. translate() without
    GEMINI_API_KEY or a Cloudinary upload without credentials.
    """

    def __init__(
        self,
        setting: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["setting"] = setting
        super().__init__(message=message or f"{setting} is not configured", context=ctx)
        self.setting = setting


class UpstreamServiceError(StorySnapError):
    """
    Raised when an external service (Gemini, Cloudinary) fails or returns a
    reply we cannot use.

    HTTP:  500 Internal Server Error, with `details` in the body so the
    client can show what went wrong.

    Translation failures surface on the first failure. Image uploads raise
    this only after the tenacity retries are exhausted.
    """

    def __init__(
        self,
        message: str = "External service request failed",
        service: Optional[str] = None,
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if service:
            ctx["service"] = service
        if details:
            ctx["details"] = details
        super().__init__(message=message, context=ctx)
        self.service = service
        self.details = details


class ImageStorageError(StorySnapError):
    """
    Raised when writing an image to local storage fails (disk full,
    permission denied). The response never includes file system paths.
    """

    def __init__(
        self,
        message: str = "Image storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(StorySnapError):
    """
    Raised when a database operation fails unexpectedly.

    HTTP:  500 Internal Server Error

    The message returned to the client is always generic. Constraint names,
    SQL and driver messages are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


def disallowed_fields_error(fields: List[str]) -> ValidationError:
    """Builds the ValidationError for PATCH bodies naming non-editable fields."""
    ordered = sorted(fields)
    return ValidationError(
        message=f"Fields cannot be updated: {', '.join(ordered)}",
        field=ordered[0],
        context={"disallowed": ordered},
    )
