"""Qdrant adapter implementing the retrieval port.

Expects each point's payload to carry ``document_id`` and ``content`` (the
chunk text), as written by the ingestion side.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qdrant_client import AsyncQdrantClient

from ....core.domain import SourceMatch
from ....core.domain.exceptions import QdrantConnectionError, QdrantQueryError
from ....core.ports.retrieval_port import RetrievalPort

logger = logging.getLogger(__name__)


class QdrantAdapter(RetrievalPort):
    """Similarity search over one Qdrant collection of document chunks."""

    def __init__(
        self,
        url: str,
        api_key: str,
        collection_name: str = "document_chunks",
    ) -> None:
        """Initialize the Qdrant adapter.

        Args:
            url: Qdrant cluster URL.
            api_key: Qdrant API key.
            collection_name: Collection holding the chunk vectors.
        """
        self.url = url
        self.api_key = api_key
        self.collection_name = collection_name
        self._client: "AsyncQdrantClient | None" = None

    def _get_client(self) -> "AsyncQdrantClient":
        """Get or create the async Qdrant client."""
        if not self._client:
            try:
                from qdrant_client import AsyncQdrantClient

                self._client = AsyncQdrantClient(url=self.url, api_key=self.api_key or None)
                logger.info("Connected to Qdrant at: %s", self.url)
            except Exception as e:
                raise QdrantConnectionError(
                    f"Failed to connect to Qdrant at {self.url}",
                    cause=e,
                    context={"url": self.url},
                ) from e

        return self._client

    async def search(
        self,
        vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[SourceMatch]:
        """Return matching chunks in Qdrant's ranking order.

        Args:
            vector: Query embedding.
            threshold: Minimum similarity score.
            limit: Maximum number of matches.

        Returns:
            List of SourceMatch objects.
        """
        client = self._get_client()

        try:
            response = await client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                score_threshold=threshold,
                with_payload=True,
            )
        except Exception as e:
            raise QdrantQueryError(
                f"Search in '{self.collection_name}' failed: {e}",
                cause=e,
                context={"collection": self.collection_name, "limit": limit},
            ) from e

        matches = []
        for index, point in enumerate(response.points):
            payload = point.payload or {}
            matches.append(
                SourceMatch.from_row(
                    {
                        "id": point.id,
                        "document_id": payload.get("document_id"),
                        "content": payload.get("content", ""),
                        "score": point.score,
                    },
                    index,
                )
            )

        logger.debug("Qdrant returned %d matches from %s", len(matches), self.collection_name)
        return matches

    async def ping(self) -> bool:
        """Check that the collection is reachable."""
        client = self._get_client()
        try:
            return await client.collection_exists(self.collection_name)
        except Exception as e:
            raise QdrantConnectionError(f"Qdrant at {self.url} did not answer", cause=e) from e
