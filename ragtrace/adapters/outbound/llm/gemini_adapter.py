"""Google Gemini adapter implementing the streaming LLM port."""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from google import genai

from ....core.domain.exceptions import (
    LLMConnectionError,
    LLMError,
    LLMGenerationError,
    LLMRateLimitError,
    MissingAPIKeyError,
)
from ....core.domain.utils import strip_bom
from ....core.ports.llm_port import LLMPort

logger = logging.getLogger(__name__)

# Gemini calls the assistant role "model"
_ROLE_MAP = {"user": "user", "assistant": "model"}


class GeminiAdapter(LLMPort):
    """Client for Google Gemini using the async google-genai SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.3,
    ) -> None:
        """Initialize the Gemini adapter.

        Args:
            api_key: Google AI API key.
            model: Model to use.
            temperature: Sampling temperature (0.0-1.0).
        """
        self.api_key = api_key
        self.model_name = model
        self.temperature = temperature
        self._client: "genai.Client | None" = None

    def _get_client(self) -> "genai.Client":
        """Lazy load the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise MissingAPIKeyError(
                    "Google API key not set. Get one at https://aistudio.google.com/ "
                    "and set GOOGLE_API_KEY in your .env file."
                )

            from google import genai

            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client initialized for model: %s", self.model_name)

        return self._client

    @staticmethod
    def to_contents(messages: list[dict[str, str]]) -> tuple[str | None, list[dict[str, Any]]]:
        """Split chat messages into a system instruction and Gemini contents."""
        system_parts: list[str] = []
        contents: list[dict[str, Any]] = []
        for message in messages:
            role = message.get("role", "user")
            if role == "system":
                system_parts.append(message["content"])
                continue
            contents.append(
                {"role": _ROLE_MAP.get(role, "user"), "parts": [{"text": message["content"]}]}
            )
        return ("\n\n".join(system_parts) or None), contents

    def _translate(self, exc: Exception) -> LLMError:
        message = str(exc)
        context = {"model": self.model_name}
        lowered = message.lower()
        if getattr(exc, "code", None) == 429 or "quota" in lowered or "rate limit" in lowered:
            return LLMRateLimitError(
                "Rate limit reached. Please wait and try again.", cause=exc, context=context
            )
        if isinstance(exc, OSError):
            return LLMConnectionError(
                f"Could not reach Gemini: {message}", cause=exc, context=context
            )
        return LLMGenerationError(f"Gemini error: {message}", cause=exc, context=context)

    async def generate_stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """Stream a completion, yielding text fragments as they arrive.

        Closing this iterator closes the underlying provider stream.
        """
        from google.genai.types import GenerateContentConfig

        client = self._get_client()
        system_instruction, contents = self.to_contents(messages)
        config = GenerateContentConfig(
            temperature=self.temperature,
            system_instruction=system_instruction,
        )

        try:
            stream = await client.aio.models.generate_content_stream(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise self._translate(e) from e

        async with aclosing(stream) as chunks:
            try:
                async for chunk in chunks:
                    if chunk.text:
                        yield strip_bom(chunk.text)
            except Exception as e:
                raise self._translate(e) from e
