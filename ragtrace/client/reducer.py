"""Client-side reconstruction of a run from the NDJSON event stream.

The transport delivers arbitrary byte chunks: a record may be split across
chunks, several records may share one, and a multi-byte character may be
cut in half. ``TraceStreamDecoder`` turns chunks into parsed events,
``reduce`` folds one event into a ``TraceState``, and ``TraceReducer`` ties
the two together behind an explicit state container.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ..core.domain import EventType, RunRecord, SourceMatch, Step

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "\n"


@dataclass(frozen=True)
class AnswerMessage:
    """The assistant message being rendered: text plus its sources."""

    content: str = ""
    sources: tuple[SourceMatch, ...] = ()


@dataclass(frozen=True)
class TraceState:
    """Immutable view of a run as seen by the client.

    Attributes:
        steps: Steps in first-seen order.
        answer: The in-progress assistant message.
        errors: Error messages received, in order.
    """

    steps: tuple[Step, ...] = ()
    answer: AnswerMessage = field(default_factory=AnswerMessage)
    errors: tuple[str, ...] = ()

    def step(self, key: str) -> Step | None:
        return next((step for step in self.steps if step.key == key), None)

    @classmethod
    def from_run(cls, record: RunRecord) -> TraceState:
        """Rebuild the final state of a persisted run for replay."""
        return cls(
            steps=tuple(record.steps),
            answer=AnswerMessage(content=record.answer or "", sources=tuple(record.sources)),
        )


def upsert_step(steps: tuple[Step, ...], step: Step) -> tuple[Step, ...]:
    """Same merge semantics as the server-side ledger."""
    for index, existing in enumerate(steps):
        if existing.key == step.key:
            return steps[:index] + (existing.merged(step),) + steps[index + 1 :]
    return steps + (step,)


def normalize_sources(rows: Iterable[Any]) -> tuple[SourceMatch, ...]:
    """Accept either ``similarity`` or ``score`` naming for each match."""
    return tuple(
        SourceMatch.from_row(row, index)
        for index, row in enumerate(rows)
        if isinstance(row, Mapping)
    )


def reduce(state: TraceState, event: Mapping[str, Any]) -> TraceState:
    """Fold one parsed wire record into ``state``.

    Unknown event types leave the state unchanged. Error events are recorded
    but do not end the run; only the transport closing does.
    """
    try:
        event_type = EventType(event.get("type"))
    except ValueError:
        logger.warning("Ignoring event of unknown type: %r", event.get("type"))
        return state
    data = event.get("data")

    if event_type is EventType.STEP:
        if not isinstance(data, Mapping):
            logger.warning("Ignoring step event without payload")
            return state
        try:
            step = Step.from_dict(data)
        except ValueError as e:
            logger.warning("Ignoring malformed step event: %s", e)
            return state
        return replace(state, steps=upsert_step(state.steps, step))

    if event_type is EventType.SOURCES:
        sources = normalize_sources(data if isinstance(data, list) else [])
        return replace(state, answer=replace(state.answer, sources=sources))

    if event_type is EventType.DELTA:
        if not data:
            return state
        return replace(
            state, answer=replace(state.answer, content=state.answer.content + str(data))
        )

    logger.error("Server error: %s", data)
    return replace(state, errors=state.errors + (str(data),))


class TraceStreamDecoder:
    """Incremental NDJSON parser with a carry-over buffer."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> Iterator[dict[str, Any]]:
        """Consume one chunk and yield every complete record it finishes."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(RECORD_SEPARATOR)
        for line in lines:
            record = self._parse(line)
            if record is not None:
                yield record

    def close(self) -> Iterator[dict[str, Any]]:
        """Flush the decoder and parse any leftover fragment as a final record."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        for line in tail.split(RECORD_SEPARATOR):
            record = self._parse(line)
            if record is not None:
                yield record

    @staticmethod
    def _parse(line: str) -> dict[str, Any] | None:
        if not line.strip():
            return None
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping malformed trace line: %.200s", line)
            return None
        if not isinstance(record, dict):
            logger.warning("Skipping non-object trace line: %.200s", line)
            return None
        return record


class TraceReducer:
    """State container for one streamed run.

    Example:
        reducer = TraceReducer()
        for chunk in response.iter_content(chunk_size=None):
            reducer.feed(chunk)
        reducer.close()
        print(reducer.state.answer.content)
    """

    def __init__(self, initial: TraceState | None = None) -> None:
        self._state = initial or TraceState()
        self._decoder = TraceStreamDecoder()
        self.closed = False

    @property
    def state(self) -> TraceState:
        return self._state

    def dispatch(self, event: Mapping[str, Any]) -> TraceState:
        self._state = reduce(self._state, event)
        return self._state

    def feed(self, chunk: bytes | str) -> TraceState:
        for event in self._decoder.feed(chunk):
            self.dispatch(event)
        return self._state

    def close(self) -> TraceState:
        """Signal transport close; the leftover fragment is parsed best-effort."""
        if not self.closed:
            for event in self._decoder.close():
                self.dispatch(event)
            self.closed = True
        return self._state
