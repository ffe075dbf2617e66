"""Retrieval Port Interface."""

from abc import ABC, abstractmethod

from ..domain import SourceMatch


class RetrievalPort(ABC):
    """Abstract interface for similarity search over document chunks."""

    @abstractmethod
    async def search(
        self,
        vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[SourceMatch]:
        """Return at most ``limit`` matches scoring at least ``threshold``.

        The returned order is the callee's ranking and is kept as-is.
        """
        ...

    async def ping(self) -> bool:
        """Return True when the search backend is reachable."""
        return True
