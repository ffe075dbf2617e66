"""Tool Port Interface for the post-retrieval tool stage."""

from abc import ABC, abstractmethod

from ..domain import SourceMatch


class ToolPort(ABC):
    """A non-critical processing step applied to retrieval results."""

    name: str = "tool"

    @abstractmethod
    async def run(self, matches: list[SourceMatch]) -> str:
        """Process ``matches`` and return a short detail for the trace."""
        ...
