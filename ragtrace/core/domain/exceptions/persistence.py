"""Run history persistence exceptions for RagTrace."""

from .base import RagTraceError


class PersistenceError(RagTraceError):
    """Failed to read or write the run history.

    During a run this is only logged; it never reaches the event stream.
    """

    error_code = "RT_DB_001"


class RunNotFoundError(PersistenceError):
    """Requested run id does not exist."""

    error_code = "RT_DB_002"
