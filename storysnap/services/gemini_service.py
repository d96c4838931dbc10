"""
StorySnap Backend — Google Gemini Translation Service
=======================================================

What:  LLMService implementation that translates story titles and markdown
       bodies with Google Gemini.
How:   One generate_content_async call per request with JSON output mode
       (response_mime_type="application/json"). The reply must be a JSON
       object with translatedTitle / translatedContent /
       translatedContentsLabel.
Who:   Singleton used by POST /api/translate.

Failure handling:
    - Input problems         → ValidationError, no SDK call
    - GEMINI_API_KEY missing → ConfigurationError, no SDK call
    - SDK exception, timeout, empty / non-JSON / non-object reply
                             → UpstreamServiceError carrying the detail
    Nothing is retried. The caller sees the first failure.
"""

import json
import logging
import time
import uuid
from typing import Any, Dict, Optional

import google.generativeai as genai

from storysnap.config import settings
from storysnap.exceptions import ConfigurationError, UpstreamServiceError, ValidationError
from storysnap.services.llm_base import CONTENTS_LABEL, LLMService, Translation

logger = logging.getLogger(__name__)

# Each must be a string or null in the reply object
REPLY_KEYS = ("translatedTitle", "translatedContent", "translatedContentsLabel")


class GeminiService(LLMService):
    """Gemini-backed translation proxy."""

    SYSTEM_INSTRUCTION = (
        "You are a professional translator. You translate text and always reply "
        "with a single valid JSON object and nothing else."
    )

    PROMPT_TEMPLATE = """Translate the following content to {target_language}.

Input Data:
{payload}

Instructions:
1. Translate the "title" (if provided).
2. Translate the "content" (if provided). Keep the markdown structure exactly as it is:
   headings, lists, links, image references and line breaks stay in place; only the
   prose text is translated.
3. Translate the "contentsLabel".
4. Return ONLY a JSON object with keys "translatedTitle", "translatedContent" and
   "translatedContentsLabel". Use null for a key whose input was not provided."""

    def __init__(self):
        self._model = None
        self._configured_key: Optional[str] = None

    def is_configured(self) -> bool:
        return settings.translation_configured

    def _get_model(self):
        """
        Build (or reuse) the GenerativeModel for the current API key.

        The SDK keeps auth in module state, so configure() is only repeated
        when the key changes.
        """
        if self._model is None or self._configured_key != settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)
            self._model = genai.GenerativeModel(
                settings.gemini_model,
                system_instruction=self.SYSTEM_INSTRUCTION,
                generation_config={"response_mime_type": "application/json"},
            )
            self._configured_key = settings.gemini_api_key
            logger.info("Gemini translation model ready: %s", settings.gemini_model)
        return self._model

    def build_prompt(
        self,
        target_language: str,
        title: Optional[str],
        content: Optional[str],
    ) -> str:
        payload = json.dumps(
            {"title": title, "content": content, "contentsLabel": CONTENTS_LABEL},
            ensure_ascii=False,
        )
        return self.PROMPT_TEMPLATE.format(target_language=target_language, payload=payload)

    async def translate(
        self,
        target_language: Optional[str],
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Translation:
        if (not title and not content) or not target_language:
            raise ValidationError(message="Missing text/title or targetLanguage")

        if not self.is_configured():
            logger.error("GEMINI_API_KEY is missing; translation request refused")
            raise ConfigurationError(
                setting="GEMINI_API_KEY",
                message="GEMINI_API_KEY is not configured",
            )

        request_id = str(uuid.uuid4())[:8]
        prompt = self.build_prompt(target_language, title, content)
        start_time = time.time()

        try:
            response = await self._get_model().generate_content_async(
                prompt,
                request_options={"timeout": settings.translation_timeout},
            )
            raw = response.text
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "[%s] Gemini translation failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise UpstreamServiceError(
                message="Failed to translate text",
                service="gemini",
                details=str(e) or type(e).__name__,
                context={"request_id": request_id},
            )

        data = self._parse_reply(raw, request_id)

        logger.info(
            "[%s] Translated to %s in %.0fms",
            request_id,
            target_language,
            (time.time() - start_time) * 1000,
        )
        return Translation(
            title=data.get("translatedTitle"),
            content=data.get("translatedContent"),
            contents_label=data.get("translatedContentsLabel"),
        )

    @staticmethod
    def _parse_reply(raw: Optional[str], request_id: str) -> Dict[str, Any]:
        """Decode the JSON reply; anything but a JSON object is an upstream error."""
        if not raw or not raw.strip():
            raise UpstreamServiceError(
                message="Failed to translate text",
                service="gemini",
                details="No content received from the translation service",
                context={"request_id": request_id},
            )
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("[%s] Gemini returned non-JSON reply: %s", request_id, str(e))
            raise UpstreamServiceError(
                message="Failed to translate text",
                service="gemini",
                details=f"Malformed reply: {e.msg}",
                context={"request_id": request_id},
            )
        if not isinstance(data, dict):
            raise UpstreamServiceError(
                message="Failed to translate text",
                service="gemini",
                details=f"Expected a JSON object, got {type(data).__name__}",
                context={"request_id": request_id},
            )
        for key in REPLY_KEYS:
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                logger.error("[%s] Gemini reply field %s is %s", request_id, key, type(value).__name__)
                raise UpstreamServiceError(
                    message="Failed to translate text",
                    service="gemini",
                    details=f"{key} is not a string",
                    context={"request_id": request_id},
                )
        return data


gemini_service = GeminiService()
