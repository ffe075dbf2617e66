"""Base class for failures of the external services a run depends on."""

from .base import RagTraceError


class CollaboratorError(RagTraceError):
    """An embedding, retrieval or generation call failed.

    Fatal for the run: remaining stages are skipped, the partial trace is
    still persisted.
    """

    error_code = "RT_COL_001"


class CollaboratorTimeoutError(CollaboratorError):
    """A collaborator call did not finish within its time bound."""

    error_code = "RT_COL_002"
    retryable = True
