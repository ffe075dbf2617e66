"""Ordered, de-duplicated collection of pipeline steps."""

from __future__ import annotations

from ..domain import Step


class StepLedger:
    """Steps of one run keyed by ``Step.key``, kept in first-seen order.

    ``upsert`` appends unknown keys and merges known ones; there is no
    removal. Status transitions are not validated. Entries are immutable
    ``Step`` values, so a snapshot taken by one consumer is never changed
    by later writes.
    """

    def __init__(self) -> None:
        self._steps: list[Step] = []
        self._index: dict[str, int] = {}

    def upsert(self, step: Step) -> Step:
        """Insert or merge ``step`` and return the resulting entry."""
        position = self._index.get(step.key)
        if position is None:
            self._index[step.key] = len(self._steps)
            self._steps.append(step)
            return step

        merged = self._steps[position].merged(step)
        self._steps[position] = merged
        return merged

    def get(self, key: str) -> Step | None:
        position = self._index.get(key)
        return self._steps[position] if position is not None else None

    def snapshot(self) -> list[Step]:
        """Return the steps in order as a new list."""
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, key: object) -> bool:
        return key in self._index
