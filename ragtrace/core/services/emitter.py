"""Wire protocol encoder for trace events.

The stream is newline-delimited JSON, one ``{"type", "data"}`` record per
line, in exactly the order ``emit`` is called. Nothing is batched: every
generated fragment is its own ``delta`` line.
"""

from __future__ import annotations

import json

from ..domain import EventType, SourceMatch, Step, StepStatus, TraceEvent
from .step_ledger import StepLedger

RECORD_SEPARATOR = "\n"


def encode_event(event: TraceEvent) -> str:
    """Serialize one event as a wire line (terminated by the separator)."""
    return json.dumps(event.to_dict(), ensure_ascii=False) + RECORD_SEPARATOR


class TraceEmitter:
    """Builds and encodes the events of one run.

    Step events are written to the run's ledger first and the merged step
    is what goes on the wire, so the ledger and the stream never disagree.
    """

    def __init__(self, ledger: StepLedger) -> None:
        self.ledger = ledger
        self.emitted = 0

    def emit(self, event: TraceEvent) -> str:
        self.emitted += 1
        return encode_event(event)

    def step(
        self,
        key: str,
        title: str | None,
        status: StepStatus,
        detail: str | None = None,
    ) -> str:
        merged = self.ledger.upsert(Step(key=key, title=title, status=status, detail=detail))
        return self.emit(TraceEvent(EventType.STEP, merged))

    def sources(self, matches: list[SourceMatch]) -> str:
        return self.emit(TraceEvent(EventType.SOURCES, list(matches)))

    def delta(self, fragment: str) -> str:
        return self.emit(TraceEvent(EventType.DELTA, fragment))

    def error(self, message: str) -> str:
        return self.emit(TraceEvent(EventType.ERROR, message))
