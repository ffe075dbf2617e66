"""Embedding Port Interface."""

from abc import ABC, abstractmethod


class EmbeddingPort(ABC):
    """Abstract interface for embedding functions."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single query text.

        Raises:
            EmbeddingRateLimitError: On quota exhaustion (transient).
            EmbeddingError: On any other failure.
        """
        ...
