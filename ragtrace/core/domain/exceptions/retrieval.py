"""Retrieval and vector store exceptions for RagTrace."""

from .collaborator import CollaboratorError


class RetrievalError(CollaboratorError):
    """Error during document retrieval."""

    error_code = "RT_RET_001"


class VectorStoreError(RetrievalError):
    """Base error for vector store operations."""

    error_code = "RT_VEC_001"


class QdrantConnectionError(VectorStoreError):
    """Failed to connect to Qdrant.

    Common causes:
    - Invalid URL or API key
    - Network connectivity issues
    - Qdrant service is down
    """

    error_code = "RT_VEC_002"
    retryable = True


class QdrantQueryError(VectorStoreError):
    """Failed to query Qdrant.

    Common causes:
    - Collection does not exist
    - Embedding dimension mismatch
    """

    error_code = "RT_VEC_003"
