"""Custom exception hierarchy for RagTrace.

Structured exceptions with automatic context capture. Each exception includes:
- Error codes for quick identification
- Automatic capture of class, method, file, and line number
- Cause chaining for underlying exceptions
- JSON serialization for structured logging

Import from this package directly:

    from ragtrace.core.domain.exceptions import RagTraceError, EmbeddingError
"""

# Base classes
from .base import ExceptionContext, RagTraceError

# Collaborator exceptions
from .collaborator import CollaboratorError, CollaboratorTimeoutError

# Configuration exceptions
from .configuration import ConfigurationError, MissingAPIKeyError

# Embedding exceptions
from .embedding import EmbeddingAPIError, EmbeddingError, EmbeddingRateLimitError

# LLM exceptions
from .llm import LLMConnectionError, LLMError, LLMGenerationError, LLMRateLimitError

# Persistence exceptions
from .persistence import PersistenceError, RunNotFoundError

# Pipeline stage exceptions
from .pipeline import NonCriticalStageError, ToolStageError

# Retrieval exceptions
from .retrieval import (
    QdrantConnectionError,
    QdrantQueryError,
    RetrievalError,
    VectorStoreError,
)

# Validation exceptions
from .validation import EmptyQuestionError, InputError, QuestionTooLongError

__all__ = [
    # Base
    "ExceptionContext",
    "RagTraceError",
    # Configuration
    "ConfigurationError",
    "MissingAPIKeyError",
    # Collaborators
    "CollaboratorError",
    "CollaboratorTimeoutError",
    # Embedding
    "EmbeddingError",
    "EmbeddingAPIError",
    "EmbeddingRateLimitError",
    # Retrieval / vector store
    "RetrievalError",
    "VectorStoreError",
    "QdrantConnectionError",
    "QdrantQueryError",
    # LLM
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMGenerationError",
    # Pipeline stages
    "NonCriticalStageError",
    "ToolStageError",
    # Persistence
    "PersistenceError",
    "RunNotFoundError",
    # Validation
    "InputError",
    "EmptyQuestionError",
    "QuestionTooLongError",
]
