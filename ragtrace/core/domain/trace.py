"""Trace models: steps, retrieved sources, wire events and run records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal


class StepStatus(str, Enum):
    """Progress of one pipeline stage as seen by callers."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class Step:
    """Observable record of a stage's progress.

    ``title``, ``status`` and ``detail`` may be ``None`` in a partial update;
    merging keeps the previous value for those fields.

    Attributes:
        key: Stable identifier of the stage (``embedding``, ``generating``...).
        title: Human-readable label.
        status: Current status.
        detail: Optional extra information, e.g. ``"3 fragments matched"``.
    """

    key: str
    title: str | None = None
    status: StepStatus | None = None
    detail: str | None = None

    def merged(self, update: Step) -> Step:
        """Return this step with every non-``None`` field of ``update`` applied."""
        return replace(
            self,
            title=update.title if update.title is not None else self.title,
            status=update.status if update.status is not None else self.status,
            detail=update.detail if update.detail is not None else self.detail,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire/storage form. The key travels as ``id``."""
        data: dict[str, Any] = {
            "id": self.key,
            "title": self.title,
            "status": self.status.value if self.status else None,
        }
        if self.detail is not None:
            data["detail"] = self.detail
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Step:
        """Build a step from its wire form, accepting ``id`` or ``key``."""
        key = data.get("id", data.get("key"))
        if key is None:
            raise ValueError("step record has no id")
        status = data.get("status")
        detail = data.get("detail")
        return cls(
            key=str(key),
            title=data.get("title"),
            status=StepStatus(status) if status else None,
            detail=str(detail) if detail is not None else None,
        )


def _coerce_score(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class SourceMatch:
    """One retrieved document fragment.

    Collaborators report the ranking scalar as either ``similarity`` or
    ``score``; ``from_row`` resolves it once into ``similarity``.
    """

    id: int | str
    document_id: int | str | None
    content: str
    similarity: float | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], index: int = 0) -> SourceMatch:
        """Normalize a raw match from either naming convention.

        Args:
            row: Raw match mapping.
            index: Position in the result list, used when the row has no id.

        Returns:
            SourceMatch with a canonical ``similarity`` field.
        """
        similarity = _coerce_score(row.get("similarity"))
        if similarity is None:
            similarity = _coerce_score(row.get("score"))
        content = row.get("content")
        if content is None:
            content = row.get("snippet", "")
        match_id = row.get("id")
        return cls(
            id=match_id if match_id is not None else index,
            document_id=row.get("document_id"),
            content=str(content or ""),
            similarity=similarity,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "content": self.content,
            "similarity": self.similarity,
        }


@dataclass(frozen=True)
class HistoryItem:
    """A prior conversation turn supplied by the caller."""

    role: Literal["user", "assistant"]
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": "user" if self.role == "user" else "assistant", "content": self.content}


class EventType(str, Enum):
    """Discriminator of a wire record."""

    STEP = "step"
    SOURCES = "sources"
    DELTA = "delta"
    ERROR = "error"


@dataclass(frozen=True)
class TraceEvent:
    """One record of the outbound stream.

    ``data`` is a ``Step`` for step events, a list of ``SourceMatch`` for
    sources events and a string for delta and error events.
    """

    type: EventType
    data: Any

    def to_dict(self) -> dict[str, Any]:
        if self.type is EventType.STEP:
            payload: Any = self.data.to_dict()
        elif self.type is EventType.SOURCES:
            payload = [match.to_dict() for match in self.data]
        else:
            payload = self.data
        return {"type": self.type.value, "data": payload}


@dataclass(frozen=True)
class RunRecord:
    """Persisted audit artifact for one run.

    ``matched_count`` always equals ``len(sources)`` for records produced by
    the recorder. Records are immutable; the store-assigned ``id`` comes back
    on a copy.
    """

    question: str
    answer: str | None
    topk: int | None
    threshold: float | None
    matched_count: int
    duration_ms: int
    steps: list[Step] = field(default_factory=list)
    sources: list[SourceMatch] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "topk": self.topk,
            "threshold": self.threshold,
            "matched_count": self.matched_count,
            "duration_ms": self.duration_ms,
            "steps": [step.to_dict() for step in self.steps],
            "sources": [source.to_dict() for source in self.sources],
            "created_at": self.created_at.isoformat(),
        }

    def summary(self) -> dict[str, Any]:
        """List-view form without steps and sources."""
        data = self.to_dict()
        data.pop("steps")
        data.pop("sources")
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RunRecord:
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created = datetime.fromisoformat(created_at)
        elif isinstance(created_at, datetime):
            created = created_at
        else:
            created = datetime.now(UTC)
        sources = [
            SourceMatch.from_row(row, index)
            for index, row in enumerate(data.get("sources") or [])
        ]
        return cls(
            id=data.get("id"),
            question=data["question"],
            answer=data.get("answer"),
            topk=data.get("topk"),
            threshold=data.get("threshold"),
            matched_count=data.get("matched_count") or len(sources),
            duration_ms=data.get("duration_ms") or 0,
            steps=[Step.from_dict(step) for step in data.get("steps") or []],
            sources=sources,
            created_at=created,
        )


@dataclass
class RunPage:
    """One page of the run history, newest first."""

    items: list[RunRecord]
    total: int
    page: int
    page_size: int
