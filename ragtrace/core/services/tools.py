"""Tool stage implementations."""

import asyncio
import logging

from ..domain import SourceMatch
from ..ports.tool_port import ToolPort

logger = logging.getLogger(__name__)


class SearchDocsTool(ToolPort):
    """Placeholder post-retrieval tool with a fixed latency.

    Demonstrates the tool-call pattern; it hands the matches back untouched
    and only reports how many candidates it saw.
    """

    name = "searchDocs"

    def __init__(self, delay_seconds: float = 0.2) -> None:
        self.delay_seconds = delay_seconds

    async def run(self, matches: list[SourceMatch]) -> str:
        logger.debug("searchDocs processing %d matches", len(matches))
        await asyncio.sleep(self.delay_seconds)
        return f"Tool returned {len(matches)} candidate fragments"
