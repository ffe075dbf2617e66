"""Configuration-related exceptions for RagTrace."""

from .base import RagTraceError


class ConfigurationError(RagTraceError):
    """Configuration or environment variable errors.

    Raised when required configuration is missing or invalid.
    """

    error_code = "RT_CFG_001"


class MissingAPIKeyError(ConfigurationError):
    """Required API key is not configured."""

    error_code = "RT_CFG_002"
