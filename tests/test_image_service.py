"""
StorySnap Backend — Image Service Unit Tests
==============================================

What:  Base64 decoding, validation pipeline and both storage backends.
How:   MIME detection is patched (libmagic is a system library); Cloudinary's
       uploader is patched; the local backend writes into a temp directory.

Test Strategy:
    ✅ data-URI and bare base64 accepted, garbage rejected
    ✅ size and image-type limits
    ✅ local backend writes date-organized UUID files and refuses traversal
    ✅ Cloudinary uploads retried on transient errors, then UpstreamServiceError
    ✅ missing Cloudinary credentials → ConfigurationError
"""

import base64

import cloudinary.exceptions
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from storysnap.config import settings
from storysnap.exceptions import ConfigurationError, UpstreamServiceError, ValidationError
from storysnap.services.image_service import (
    CloudinaryImageStore,
    ImageService,
    LocalImageStore,
    StoredImage,
    decode_image_payload,
)


@pytest.fixture
def png_b64(sample_png_bytes):
    return base64.b64encode(sample_png_bytes).decode("ascii")


@pytest.fixture
def cloudinary_credentials(monkeypatch):
    monkeypatch.setattr(settings, "cloudinary_cloud_name", "demo")
    monkeypatch.setattr(settings, "cloudinary_api_key", "key")
    monkeypatch.setattr(settings, "cloudinary_api_secret", "secret")


class TestDecode:

    def test_bare_base64(self, png_b64, sample_png_bytes):
        assert decode_image_payload(png_b64) == sample_png_bytes

    def test_data_uri_prefix_stripped(self, png_b64, sample_png_bytes):
        assert decode_image_payload(f"data:image/png;base64,{png_b64}") == sample_png_bytes

    def test_line_wrapped_payload(self, png_b64, sample_png_bytes):
        wrapped = "\n".join(png_b64[i:i + 16] for i in range(0, len(png_b64), 16))
        assert decode_image_payload(wrapped) == sample_png_bytes

    @pytest.mark.parametrize("payload", ["not base64!!", "data:image/png;base64,", "===="])
    def test_invalid_payload(self, payload):
        with pytest.raises(ValidationError):
            decode_image_payload(payload)


class TestValidate:

    def setup_method(self):
        self.service = ImageService(store=MagicMock())

    def test_missing_image(self):
        with pytest.raises(ValidationError, match="No image provided"):
            self.service.validate(None)

    def test_accepts_png(self, png_b64, sample_png_bytes):
        with patch("storysnap.services.image_service.detect_mime_type", return_value="image/png"):
            content, mime = self.service.validate(png_b64)
        assert content == sample_png_bytes
        assert mime == "image/png"

    def test_rejects_non_image(self):
        payload = base64.b64encode(b"%PDF-1.4 fake").decode("ascii")
        with patch("storysnap.services.image_service.detect_mime_type", return_value="application/pdf"):
            with pytest.raises(ValidationError, match="not supported"):
                self.service.validate(payload)

    def test_rejects_oversized(self, monkeypatch):
        monkeypatch.setattr(settings, "max_image_size", 8)
        payload = base64.b64encode(b"x" * 9).decode("ascii")
        with patch("storysnap.services.image_service.detect_mime_type") as mock_detect:
            with pytest.raises(ValidationError, match="exceeds maximum"):
                self.service.validate(payload)
        mock_detect.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_hands_off_to_store(self, png_b64):
        stored = StoredImage(url="https://cdn/x.png", public_id="stories/x")
        store = MagicMock()
        store.store = AsyncMock(return_value=stored)
        service = ImageService(store=store)

        with patch("storysnap.services.image_service.detect_mime_type", return_value="image/png"):
            assert await service.upload(png_b64) is stored
        store.store.assert_awaited_once()


class TestLocalStore:

    @pytest.mark.asyncio
    async def test_writes_date_organized_file(self, temp_storage, sample_png_bytes):
        store = LocalImageStore(storage_root=temp_storage)

        stored = await store.store(sample_png_bytes, "image/png")

        assert stored.url == f"/api/files/{stored.public_id}"
        assert stored.public_id.endswith(".png")
        assert stored.public_id.count("/") == 3
        assert store.resolve(stored.public_id).read_bytes() == sample_png_bytes

    def test_resolve_refuses_traversal(self, temp_storage):
        store = LocalImageStore(storage_root=temp_storage)
        with pytest.raises(ValidationError):
            store.resolve("../../etc/passwd")


class TestCloudinaryStore:

    @pytest.mark.asyncio
    async def test_missing_credentials(self, monkeypatch, sample_png_bytes):
        monkeypatch.setattr(settings, "cloudinary_api_secret", "")
        with patch("cloudinary.uploader.upload") as mock_upload:
            with pytest.raises(ConfigurationError):
                await CloudinaryImageStore().store(sample_png_bytes, "image/png")
        mock_upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_returns_secure_url(self, cloudinary_credentials, sample_png_bytes):
        reply = {"secure_url": "https://res.cloudinary.com/demo/x.png", "public_id": "storysnap/stories/x"}
        with patch("cloudinary.uploader.upload", return_value=reply) as mock_upload:
            stored = await CloudinaryImageStore().store(sample_png_bytes, "image/png")

        assert stored == StoredImage(url=reply["secure_url"], public_id=reply["public_id"])
        args, kwargs = mock_upload.call_args
        assert args[0].startswith("data:image/png;base64,")
        assert kwargs["folder"] == settings.cloudinary_folder

    @pytest.mark.asyncio
    async def test_transient_errors_retried(self, cloudinary_credentials, sample_png_bytes):
        reply = {"secure_url": "https://res.cloudinary.com/demo/x.png", "public_id": "x"}
        with patch(
            "cloudinary.uploader.upload",
            side_effect=[cloudinary.exceptions.GeneralError("502"), ConnectionError("reset"), reply],
        ) as mock_upload:
            stored = await CloudinaryImageStore().store(sample_png_bytes, "image/png")

        assert stored.public_id == "x"
        assert mock_upload.call_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_become_upstream_error(self, cloudinary_credentials, sample_png_bytes):
        with patch(
            "cloudinary.uploader.upload",
            side_effect=cloudinary.exceptions.RateLimited("Rate limit exceeded"),
        ) as mock_upload:
            with pytest.raises(UpstreamServiceError) as exc_info:
                await CloudinaryImageStore().store(sample_png_bytes, "image/png")

        assert mock_upload.call_count == settings.retry_max_attempts
        assert exc_info.value.details == "Rate limit exceeded"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        cloudinary.exceptions.AuthorizationRequired("Invalid Signature"),
        cloudinary.exceptions.BadRequest("Invalid image file"),
        cloudinary.exceptions.NotAllowed("Upload preset disabled"),
    ])
    async def test_client_errors_not_retried(self, cloudinary_credentials, sample_png_bytes, error):
        with patch("cloudinary.uploader.upload", side_effect=error) as mock_upload:
            with pytest.raises(UpstreamServiceError) as exc_info:
                await CloudinaryImageStore().store(sample_png_bytes, "image/png")

        assert mock_upload.call_count == 1
        assert exc_info.value.details == str(error)
        assert exc_info.value.service == "cloudinary"

    @pytest.mark.asyncio
    async def test_reply_without_public_id(self, cloudinary_credentials, sample_png_bytes):
        with patch("cloudinary.uploader.upload", return_value={"secure_url": "https://x"}):
            with pytest.raises(UpstreamServiceError):
                await CloudinaryImageStore().store(sample_png_bytes, "image/png")
