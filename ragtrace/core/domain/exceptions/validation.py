"""Input validation exceptions for RagTrace.

Raised before a pipeline starts, so they never produce a trace or a run record.
"""

from .base import RagTraceError


class InputError(RagTraceError):
    """Inbound request failed validation."""

    error_code = "RT_VAL_001"


class EmptyQuestionError(InputError):
    """Question is missing, empty or whitespace only."""

    error_code = "RT_VAL_002"


class QuestionTooLongError(InputError):
    """Question exceeds the configured maximum length."""

    error_code = "RT_VAL_003"
