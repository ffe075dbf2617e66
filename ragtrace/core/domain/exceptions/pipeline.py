"""Exceptions for optional pipeline stages."""

from .base import RagTraceError


class NonCriticalStageError(RagTraceError):
    """A stage whose failure is logged while the run carries on."""

    error_code = "RT_STG_001"


class ToolStageError(NonCriticalStageError):
    """The post-retrieval tool call failed."""

    error_code = "RT_STG_002"
