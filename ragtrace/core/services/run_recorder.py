"""Assembly and best-effort persistence of run records."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace

from ..domain import RunRecord
from ..domain.exceptions import PersistenceError
from ..ports.run_store_port import RunStorePort
from .run_state import RunState

logger = logging.getLogger(__name__)


class RunRecorder:
    """Turns a finished ``RunState`` into a ``RunRecord`` and stores it.

    The recorder does not track how often it is called; the pipeline
    guarantees a single call per run.
    """

    def __init__(
        self,
        store: RunStorePort,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self._clock = clock

    def build(self, state: RunState) -> RunRecord:
        """Build the audit record from accumulated state.

        Args:
            state: State of a run that reached a terminal phase (or was
                interrupted).

        Returns:
            RunRecord with ``matched_count == len(sources)``.
        """
        duration_ms = max(0, int((self._clock() - state.started_at) * 1000))
        sources = list(state.sources)
        return RunRecord(
            question=state.question,
            answer=state.answer or None,
            topk=state.topk,
            threshold=state.threshold,
            matched_count=len(sources),
            duration_ms=duration_ms,
            steps=state.ledger.snapshot(),
            sources=sources,
        )

    async def persist(self, record: RunRecord) -> RunRecord:
        """Write ``record`` to the store off the event loop.

        Returns:
            A copy of ``record`` carrying its store-assigned id.

        Raises:
            PersistenceError: If the store write fails.
        """
        try:
            run_id = await asyncio.to_thread(self.store.insert_run, record)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                "Failed to persist run record",
                cause=e,
                context={"question": record.question[:100]},
            ) from e

        record = replace(record, id=run_id)
        logger.info(
            "Persisted run %s (matched=%d, duration=%dms)",
            record.id,
            record.matched_count,
            record.duration_ms,
            extra={"run_id": record.id, "duration_ms": record.duration_ms},
        )
        return record
