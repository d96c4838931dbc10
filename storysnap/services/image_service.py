"""
StorySnap Backend — Image Upload Service
==========================================

What:  Decodes, validates and stores story images sent as base64.
Why:   The story editor uploads each picture before the story is saved and
       keeps only the returned {url, publicId} pair on the story.
Who:   POST /api/upload.

Pipeline (cheapest check first):
    1. Payload present               → ValidationError
    2. Strip data-URI prefix, base64 → ValidationError on bad encoding
    3. Size ≤ MAX_IMAGE_SIZE         → ValidationError
    4. MIME type from magic bytes    → ValidationError unless an image type
    5. Hand off to the configured ImageStore

Backends:
    CloudinaryImageStore  image CDN, used in every deployed environment.
                          Server errors, rate limits and network failures are
                          retried with tenacity (exponential backoff + jitter);
                          other SDK errors fail at once. Both surface as
                          UpstreamServiceError.
    LocalImageStore       date-organized files under STORAGE_ROOT, served by
                          GET /api/files/{path}. For development without
                          Cloudinary credentials.
"""

import asyncio
import base64
import binascii
import logging
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from storysnap.config import settings
from storysnap.exceptions import (
    ConfigurationError,
    ImageStorageError,
    UpstreamServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[\w=-]+)*;base64,", re.IGNORECASE)


@dataclass(frozen=True)
class StoredImage:
    url: str
    public_id: str


def decode_image_payload(image: str) -> bytes:
    """Base64 (optionally a data URI) → raw bytes."""
    encoded = _DATA_URI_RE.sub("", image.strip(), count=1)
    encoded = "".join(encoded.split())
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(message="Image is not valid base64 data", field="image")
    if not content:
        raise ValidationError(message="Image is empty", field="image")
    return content


def detect_mime_type(content: bytes) -> str:
    """
    Inspect magic bytes with python-magic.

    Raises ImageStorageError when libmagic itself is unusable.
    """
    try:
        import magic
        return magic.from_buffer(content, mime=True)
    except Exception as e:
        logger.error("MIME type detection failed: %s", str(e))
        raise ImageStorageError(
            message="Could not verify the image type. Please try again.",
            context={"error": str(e)},
        )


class ImageStore(ABC):
    """Destination for validated image bytes."""

    @abstractmethod
    async def store(self, content: bytes, mime_type: str) -> StoredImage:
        ...


class CloudinaryImageStore(ImageStore):
    """Uploads to Cloudinary into settings.cloudinary_folder."""

    def _configure(self) -> None:
        if not settings.cloudinary_configured:
            raise ConfigurationError(
                setting="CLOUDINARY_CLOUD_NAME/CLOUDINARY_API_KEY/CLOUDINARY_API_SECRET",
                message="Image hosting is not configured",
            )
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )

    async def store(self, content: bytes, mime_type: str) -> StoredImage:
        self._configure()
        data_uri = f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"
        try:
            result = await self._upload_with_retry(data_uri)
        except Exception as e:
            logger.error("Cloudinary upload failed after retries: %s", str(e))
            raise UpstreamServiceError(
                message="Failed to upload image",
                service="cloudinary",
                details=str(e) or type(e).__name__,
            )

        url = result.get("secure_url") or result.get("url")
        public_id = result.get("public_id")
        if not url or not public_id:
            raise UpstreamServiceError(
                message="Failed to upload image",
                service="cloudinary",
                details="Upload reply did not include a url and public_id",
            )
        logger.info("Image uploaded to Cloudinary: %s (%d bytes)", public_id, len(content))
        return StoredImage(url=url, public_id=public_id)

    @retry(
        # 4xx replies (bad signature, bad request, not found) fail on the first attempt
        retry=retry_if_exception_type((
            cloudinary.exceptions.GeneralError,
            cloudinary.exceptions.RateLimited,
            ConnectionError,
            TimeoutError,
        )),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=settings.retry_jitter,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _upload_with_retry(self, data_uri: str) -> dict:
        # The SDK is synchronous; keep the event loop free while it uploads
        return await asyncio.to_thread(
            cloudinary.uploader.upload,
            data_uri,
            folder=settings.cloudinary_folder,
            resource_type="image",
        )


class LocalImageStore(ImageStore):
    """
    Writes images to STORAGE_ROOT/YYYY/MM/DD/<uuid>.<ext>.

    UUID filenames contain no user input, so there is nothing to traverse.
    """

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store(self, content: bytes, mime_type: str) -> StoredImage:
        absolute_path, relative_path = self._generate_storage_path(ALLOWED_MIME_TYPES[mime_type])
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise ImageStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"os_error": str(e)},
            )
        logger.info("Image stored locally: %s (%d bytes)", relative_path, len(content))
        return StoredImage(url=f"/api/files/{relative_path}", public_id=relative_path)

    def resolve(self, relative_path: str) -> Path:
        """
        Map a public id back to a file inside storage_root.

        Raises:
            ValidationError: the path escapes storage_root
            NotFoundError is left to the caller (file may be absent)
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        return full_path


class ImageService:
    """Validation pipeline in front of the configured ImageStore."""

    def __init__(self, store: Optional[ImageStore] = None):
        self._store = store

    @property
    def store(self) -> ImageStore:
        if self._store is None:
            self._store = (
                LocalImageStore() if settings.image_backend == "local" else CloudinaryImageStore()
            )
        return self._store

    def validate(self, image: Optional[str]) -> Tuple[bytes, str]:
        """Steps 1-4 of the pipeline. Returns (content, mime_type)."""
        if not image:
            raise ValidationError(message="No image provided", field="image")

        content = decode_image_payload(image)

        if len(content) > settings.max_image_size:
            max_mb = settings.max_image_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

        mime_type = detect_mime_type(content)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=f"Image type '{mime_type}' is not supported. Use PNG, JPEG, WebP or GIF.",
                field="image",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return content, mime_type

    async def upload(self, image: Optional[str]) -> StoredImage:
        content, mime_type = self.validate(image)
        return await self.store.store(content, mime_type)


image_service = ImageService()
