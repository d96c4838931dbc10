"""
StorySnap Backend — Abstract Translation Service Interface
============================================================

What:  Contract for the LLM provider behind POST /api/translate.
Why:   Keeps the translate route and its tests independent of the Gemini SDK;
       another provider only has to implement this class.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

# Fixed UI string whose translation is returned alongside the story
CONTENTS_LABEL = "Contents"


@dataclass(frozen=True)
class Translation:
    """Provider reply. A field is None when the matching input was not sent."""
    title: Optional[str]
    content: Optional[str]
    contents_label: Optional[str]


class LLMService(ABC):
    """
    Abstract interface for story translation.

    Contract:
        - translate() validates its inputs before any network call
        - Missing credentials raise ConfigurationError without a network call
        - Provider failures and unusable replies raise UpstreamServiceError
        - No retries, no caching: one call in, one provider request out
    """

    @abstractmethod
    async def translate(
        self,
        target_language: Optional[str],
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Translation:
        """
        Translate a story title and/or markdown body.

        Raises:
            ValidationError:      neither title nor content, or no target language
            ConfigurationError:   provider credentials missing
            UpstreamServiceError: provider call failed or reply was malformed
        """
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present. Used by the health check."""
        ...
