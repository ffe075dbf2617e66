"""Root of the RagTrace exception hierarchy.

An error raised anywhere in the pipeline has to be rendered three ways: as
a structured HTTP body, as a JSON log entry, and as the plain ``message``
carried by an ``error`` event on the wire. ``RagTraceError`` keeps what all
three need: a stable code, the raise site, the underlying cause and
free-form context.
"""

import inspect
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import FrameType
from typing import Any


@dataclass
class ExceptionContext:
    """Where an error was raised."""

    class_name: str
    method_name: str
    file_name: str
    line_number: int
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def from_frame(cls, frame: FrameType | None) -> "ExceptionContext":
        if frame is None:
            return cls("<unknown>", "<unknown>", "<unknown>", 0)
        owner = frame.f_locals.get("self")
        return cls(
            class_name=type(owner).__name__ if owner is not None else "<module>",
            method_name=frame.f_code.co_name,
            file_name=frame.f_code.co_filename.replace("\\", "/").rsplit("/", 1)[-1],
            line_number=frame.f_lineno,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "class": self.class_name,
            "method": self.method_name,
            "file": self.file_name,
            "line": self.line_number,
            "timestamp": self.timestamp,
        }


def _raise_site() -> FrameType | None:
    """Frame that called the exception constructor."""
    frame = inspect.currentframe()
    # _raise_site <- RagTraceError.__init__ <- raise site
    for _ in range(2):
        if frame is None:
            break
        frame = frame.f_back
    return frame


class RagTraceError(Exception):
    """Base exception for all RagTrace errors.

    Subclasses set ``error_code`` and, for transient collaborator failures
    such as quota exhaustion or timeouts, ``retryable = True``.

    Example:
        try:
            vector = await client.aio.models.embed_content(...)
        except Exception as e:
            raise EmbeddingAPIError(
                "Embedding request failed",
                cause=e,
                context={"model": model_name},
            ) from e
    """

    error_code: str = "RT_ERR_001"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable message; this is also what the client
                sees in an ``error`` event.
            cause: The underlying exception, if any.
            context: Extra key-value pairs for debugging.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.extra_context = context or {}
        self.location = ExceptionContext.from_frame(_raise_site())
        self.stack_trace = (
            "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
            if cause is not None
            else None
        )

    def to_dict(self, include_trace: bool = False) -> dict[str, Any]:
        """Structured form used by the HTTP error handlers and JSON logs.

        Args:
            include_trace: Add the cause's stack trace (debug mode).
        """
        result: dict[str, Any] = {
            "error": {
                "type": type(self).__name__,
                "code": self.error_code,
                "message": self.message,
                "retryable": self.retryable,
            },
            "location": self.location.to_dict(),
        }
        if self.extra_context:
            result["context"] = self.extra_context
        if self.cause is not None:
            result["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}
        if include_trace and self.stack_trace:
            result["stack_trace"] = [line for line in self.stack_trace.splitlines() if line.strip()]
        return result
