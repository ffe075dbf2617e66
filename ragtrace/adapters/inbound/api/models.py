"""Pydantic models for API requests and responses."""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ....core.domain import HistoryItem, RunPage, RunRecord
from ....core.services.pipeline import AskRequest


def _number_or_none(value: Any) -> Any:
    """Non-numeric tuning values fall back to the server defaults."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


class ChatMessage(BaseModel):
    """A single prior turn of the conversation."""

    role: Literal["user", "assistant"] = Field(..., description="Who sent the message")
    content: str = Field(..., description="Content of the message")


class AskBody(BaseModel):
    """Request model for asking a question.

    ``question`` is optional here so that a missing question is reported by
    the pipeline's own validation with a structured 400.
    """

    model_config = ConfigDict(populate_by_name=True)

    question: str | None = Field(
        None,
        description="The question to answer from the indexed documents",
        json_schema_extra={"example": "What does the contract say about termination?"},
    )
    history: list[ChatMessage] = Field(
        default_factory=list,
        description="Prior conversation turns, oldest first",
    )
    topk: int | float | None = Field(
        None,
        validation_alias=AliasChoices("topk", "topK"),
        description="Number of fragments to retrieve, in (0, 20]",
    )
    threshold: int | float | None = Field(
        None,
        description="Minimum similarity in [0, 1]",
    )

    @field_validator("topk", "threshold", mode="before")
    @classmethod
    def drop_non_numbers(cls, value: Any) -> Any:
        return _number_or_none(value)

    def to_request(self) -> AskRequest:
        return AskRequest(
            question=self.question,
            history=[HistoryItem(role=m.role, content=m.content) for m in self.history],
            topk=self.topk,
            threshold=self.threshold,
        )


class StepModel(BaseModel):
    """A recorded pipeline step."""

    id: str
    title: str | None = None
    status: Literal["pending", "running", "done", "error"] | None = None
    detail: str | None = None


class SourceModel(BaseModel):
    """A retrieved document fragment."""

    id: int | str
    document_id: int | str | None = None
    content: str
    similarity: float | None = None


class RunSummary(BaseModel):
    """Run history entry without its trace."""

    id: int | None
    question: str
    answer: str | None = None
    topk: int | None = None
    threshold: float | None = None
    matched_count: int
    duration_ms: int
    created_at: str

    @classmethod
    def from_record(cls, record: RunRecord) -> "RunSummary":
        return cls(**record.summary())


class RunDetail(RunSummary):
    """Full persisted run including steps and sources."""

    steps: list[StepModel] = Field(default_factory=list)
    sources: list[SourceModel] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: RunRecord) -> "RunDetail":
        return cls(**record.to_dict())


class RunPageResponse(BaseModel):
    """One page of run history, newest first."""

    items: list[RunSummary]
    total: int
    page: int
    page_size: int

    @classmethod
    def from_page(cls, page: RunPage) -> "RunPageResponse":
        return cls(
            items=[RunSummary.from_record(item) for item in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    run_store: str = Field(..., description="Run history storage status")
    vector_store: str = Field(..., description="Vector store status")


class ErrorDetail(BaseModel):
    """Structured error detail information."""

    type: str = Field(..., description="Exception type name")
    code: str = Field(..., description="Error code (e.g., RT_VAL_002)")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(False, description="Whether the same request may succeed later")


class ErrorLocation(BaseModel):
    """Source location where error occurred."""

    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(..., alias="class", description="Class name or <module>")
    method: str = Field(..., description="Method/function name")
    file: str = Field(..., description="Source file name")
    line: int = Field(..., description="Line number")
    timestamp: str | None = Field(None, description="When the error occurred")


class ErrorResponse(BaseModel):
    """Response model for structured errors.

    Example:
        {
            "error": {"type": "EmptyQuestionError", "code": "RT_VAL_002", "message": "..."},
            "location": {"class": "<module>", "method": "validate_question", ...},
            "context": {"path": "/api/v1/ask"}
        }
    """

    error: ErrorDetail = Field(..., description="Error details including type, code, and message")
    location: ErrorLocation | None = Field(None, description="Source location of the error")
    context: dict | None = Field(None, description="Additional debugging context")
    cause: dict | None = Field(None, description="Underlying exception that caused this error")
    stack_trace: list[str] | None = Field(None, description="Stack trace (debug mode only)")
