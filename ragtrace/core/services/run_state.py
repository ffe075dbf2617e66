"""Mutable state accumulated by one pipeline run."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from ..domain import HistoryItem, SourceMatch
from .step_ledger import StepLedger


class PipelineState(str, Enum):
    """States of the orchestrator's state machine."""

    RECEIVED = "received"
    EMBEDDING = "embedding"
    RETRIEVING = "retrieving"
    TOOL_INVOKING = "tool_invoking"
    GENERATING = "generating"
    NO_MATCHES = "no_matches"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({PipelineState.NO_MATCHES, PipelineState.DONE, PipelineState.ERROR})


@dataclass
class RunState:
    """Everything the run recorder needs once the run terminates.

    Created per request and never shared between runs.
    """

    question: str
    topk: int
    threshold: float
    history: list[HistoryItem] = field(default_factory=list)
    ledger: StepLedger = field(default_factory=StepLedger)
    query_vector: list[float] = field(default_factory=list)
    sources: list[SourceMatch] = field(default_factory=list)
    answer: str = ""
    truncated: bool = False
    phase: PipelineState = PipelineState.RECEIVED
    started_at: float = field(default_factory=time.monotonic)
    persisted: bool = False
