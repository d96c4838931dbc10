"""
StorySnap Backend — Translation Route Handler
===============================================

What:  POST /api/translate, a stateless pass-through to the LLM provider.
How:   The service validates input and credentials before calling Gemini, so a
       bad request never reaches the provider. No caching, no retries.
"""

import logging

from fastapi import APIRouter

from storysnap.schemas.common import ErrorResponse, TranslateRequest, TranslateResponse
from storysnap.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Translation"])


@router.post(
    "/translate",
    response_model=TranslateResponse,
    responses={
        400: {"description": "Missing text/title or targetLanguage", "model": ErrorResponse},
        500: {"description": "Provider not configured or failed", "model": ErrorResponse},
    },
    summary="Translate a story title and markdown body",
)
async def translate(payload: TranslateRequest) -> TranslateResponse:
    translation = await gemini_service.translate(
        target_language=payload.target_language,
        title=payload.title,
        content=payload.text,
    )
    return TranslateResponse(
        translated_text=translation.content,
        translated_title=translation.title,
        translated_contents_label=translation.contents_label,
    )
