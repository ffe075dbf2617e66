"""LLM exceptions for RagTrace."""

from .collaborator import CollaboratorError


class LLMError(CollaboratorError):
    """Base error for LLM operations."""

    error_code = "RT_LLM_001"


class LLMConnectionError(LLMError):
    """Failed to connect to LLM provider.

    Common causes:
    - Invalid API key
    - Network issues
    - Service unavailable
    """

    error_code = "RT_LLM_002"
    retryable = True


class LLMRateLimitError(LLMError):
    """Rate limit exceeded on LLM provider."""

    error_code = "RT_LLM_003"
    retryable = True


class LLMGenerationError(LLMError):
    """Failed while producing the streamed response.

    Common causes:
    - Content filtered by safety settings
    - Stream interrupted by the provider
    """

    error_code = "RT_LLM_004"
