"""Embedding exceptions for RagTrace."""

from .collaborator import CollaboratorError


class EmbeddingError(CollaboratorError):
    """Failed to generate embeddings."""

    error_code = "RT_EMB_001"


class EmbeddingAPIError(EmbeddingError):
    """Embedding API returned an error."""

    error_code = "RT_EMB_002"


class EmbeddingRateLimitError(EmbeddingError):
    """Embedding API quota or rate limit exceeded.

    Transient: the same request may succeed later.
    """

    error_code = "RT_EMB_003"
    retryable = True
