"""
StorySnap Backend — Image Upload Route Handlers
=================================================

    POST /api/upload            base64 image → {success, url, publicId}
    GET  /api/files/{path}      serves images written by the local backend;
                                404 for every path when IMAGE_BACKEND is not local

Caching:
    Stored images never change (UUID names), so the file route sends a long
    public Cache-Control.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from storysnap.config import settings
from storysnap.exceptions import NotFoundError
from storysnap.schemas.common import ErrorResponse, UploadRequest, UploadResponse
from storysnap.services.image_service import LocalImageStore, image_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Images"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"description": "Missing, undecodable, oversized or non-image payload", "model": ErrorResponse},
        500: {"description": "Image host not configured or failed", "model": ErrorResponse},
    },
    summary="Upload a story image",
)
async def upload_image(payload: UploadRequest) -> UploadResponse:
    stored = await image_service.upload(payload.image)
    return UploadResponse(url=stored.url, public_id=stored.public_id)


@router.get(
    "/files/{file_path:path}",
    summary="Serve a locally stored image",
    responses={200: {"description": "Image file"}, 404: {"model": ErrorResponse}},
)
async def serve_file(file_path: str) -> FileResponse:
    if settings.image_backend != "local":
        raise NotFoundError(resource="file", resource_id=file_path)
    full_path = LocalImageStore().resolve(file_path)
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
