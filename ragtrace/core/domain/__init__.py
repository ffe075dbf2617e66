"""Domain models for RagTrace.

- trace: Step, SourceMatch, HistoryItem, TraceEvent, RunRecord, RunPage

Re-exported here for convenient importing:

    from ragtrace.core.domain import Step, StepStatus, RunRecord
"""

from .trace import (
    EventType,
    HistoryItem,
    RunPage,
    RunRecord,
    SourceMatch,
    Step,
    StepStatus,
    TraceEvent,
)

__all__ = [
    "EventType",
    "HistoryItem",
    "RunPage",
    "RunRecord",
    "SourceMatch",
    "Step",
    "StepStatus",
    "TraceEvent",
]
