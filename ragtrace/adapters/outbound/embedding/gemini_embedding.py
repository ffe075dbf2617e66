"""Gemini embedding adapter implementing the embedding port."""

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from google import genai

from ....core.domain.exceptions import (
    EmbeddingAPIError,
    EmbeddingError,
    EmbeddingRateLimitError,
    MissingAPIKeyError,
)
from ....core.ports.embedding_port import EmbeddingPort

logger = logging.getLogger(__name__)

MAX_EMBEDDING_RETRIES = 3


def _is_rate_limited(exc: Exception) -> bool:
    if getattr(exc, "code", None) == 429:
        return True
    message = str(exc).lower()
    return "quota" in message or "rate limit" in message or "resource_exhausted" in message


class GeminiEmbeddingAdapter(EmbeddingPort):
    """Embeds questions with the Google Gemini embedding model.

    Uses the async client of the google-genai SDK. Rate-limited requests are
    retried with exponential backoff before surfacing as
    ``EmbeddingRateLimitError``.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-embedding-001",
        max_retries: int = MAX_EMBEDDING_RETRIES,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max_retries
        self._client: "genai.Client | None" = None

    def _get_client(self) -> "genai.Client":
        """Lazy load the genai client."""
        if self._client is None:
            if not self.api_key:
                raise MissingAPIKeyError(
                    "Google API key not set. Set GOOGLE_API_KEY in your .env file."
                )

            from google import genai

            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini embedding client initialized for model: %s", self.model_name)
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Generate the embedding for a single query text."""
        from google.genai.types import EmbedContentConfig

        client = self._get_client()

        for attempt in range(self.max_retries):
            try:
                result = await client.aio.models.embed_content(
                    model=self.model_name,
                    contents=text,
                    config=EmbedContentConfig(task_type="RETRIEVAL_QUERY"),
                )
            except Exception as e:
                if not _is_rate_limited(e):
                    raise EmbeddingAPIError(
                        "Embedding request failed",
                        cause=e,
                        context={"model": self.model_name},
                    ) from e
                if attempt == self.max_retries - 1:
                    raise EmbeddingRateLimitError(
                        "Embedding quota exceeded, try again later",
                        cause=e,
                        context={"model": self.model_name, "attempts": self.max_retries},
                    ) from e
                wait_time = 2**attempt
                logger.warning("Embedding rate limit hit, retrying in %ds...", wait_time)
                await asyncio.sleep(wait_time)
                continue

            if not result.embeddings or not result.embeddings[0].values:
                raise EmbeddingError(
                    "Embedding response contained no vector",
                    context={"model": self.model_name},
                )
            return list(result.embeddings[0].values)

        raise EmbeddingError("Embedding failed after retries", context={"model": self.model_name})
