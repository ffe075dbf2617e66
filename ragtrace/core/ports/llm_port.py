"""LLM Port Interface."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class LLMPort(ABC):
    """Abstract interface for streaming chat completion."""

    @abstractmethod
    def generate_stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """Stream the completion for ``messages`` fragment by fragment.

        Args:
            messages: Chat messages with ``role`` (system, user, assistant)
                and ``content``.

        Returns:
            A lazy, finite, non-restartable async iterator of text fragments.
            Closing it must release the provider connection.
        """
        ...
