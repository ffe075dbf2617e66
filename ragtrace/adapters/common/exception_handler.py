"""Error rendering shared by the HTTP API and the CLI.

Everything that leaves the process as an error, whether a JSON response
body, a CLI message or a log entry, goes through ``format_exception_json``
so the shape is the same for domain errors and foreign exceptions alike.
"""

import json
import logging
import traceback
from typing import Any

from ...core.domain.exceptions import (
    CollaboratorError,
    CollaboratorTimeoutError,
    ConfigurationError,
    EmbeddingRateLimitError,
    ExceptionContext,
    InputError,
    LLMRateLimitError,
    RagTraceError,
    RunNotFoundError,
)

logger = logging.getLogger(__name__)

FOREIGN_ERROR_CODE = "PYTHON_ERR"

# First match wins, so subclasses come before their bases
HTTP_STATUS_BY_TYPE: tuple[tuple[tuple[type[Exception], ...], int], ...] = (
    ((InputError, ValueError), 400),
    ((RunNotFoundError,), 404),
    ((LLMRateLimitError, EmbeddingRateLimitError), 429),
    ((CollaboratorTimeoutError,), 504),
    ((CollaboratorError, ConnectionError, TimeoutError), 503),
    ((ConfigurationError, RagTraceError), 500),
)


def _innermost_frame(exc: BaseException) -> ExceptionContext:
    tb = exc.__traceback__
    while tb is not None and tb.tb_next is not None:
        tb = tb.tb_next
    return ExceptionContext.from_frame(tb.tb_frame if tb else None)


def format_exception_json(
    exc: Exception,
    include_trace: bool = False,
    extra_context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Structured payload for any exception.

    Args:
        exc: The exception to render.
        include_trace: Add the stack trace (debug mode only).
        extra_context: Request or command details merged into ``context``.
    """
    if isinstance(exc, RagTraceError):
        result = exc.to_dict(include_trace=include_trace)
    else:
        location = _innermost_frame(exc)
        result = {
            "error": {
                "type": type(exc).__name__,
                "code": FOREIGN_ERROR_CODE,
                "message": str(exc),
                "retryable": False,
            },
            "location": location.to_dict(),
        }
        if include_trace:
            result["stack_trace"] = [
                line.rstrip()
                for line in traceback.format_exception(type(exc), exc, exc.__traceback__)
                if line.strip()
            ]

    if extra_context:
        result.setdefault("context", {}).update(extra_context)
    return result


def log_exception(
    exc: Exception,
    log: logging.Logger | None = None,
    level: int = logging.ERROR,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """Log ``exc`` as one structured JSON message, trace included."""
    payload = format_exception_json(exc, include_trace=True, extra_context=extra_context)
    (log or logger).log(
        level,
        json.dumps(payload, ensure_ascii=False),
        extra={"error_code": get_error_code(exc)},
    )


def get_error_code(exc: Exception) -> str:
    """Domain error code, or ``PYTHON_ERR`` for foreign exceptions."""
    return exc.error_code if isinstance(exc, RagTraceError) else FOREIGN_ERROR_CODE


def get_http_status_code(exc: Exception) -> int:
    """HTTP status for an exception that escaped a route (500 if unmapped)."""
    for types, status in HTTP_STATUS_BY_TYPE:
        if isinstance(exc, types):
            return status
    return 500
