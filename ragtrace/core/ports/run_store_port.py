"""Run history store Port Interface."""

from abc import ABC, abstractmethod

from ..domain import RunPage, RunRecord


class RunStorePort(ABC):
    """Abstract interface for durable run records."""

    @abstractmethod
    def insert_run(self, record: RunRecord) -> int:
        """Persist a record and return its id."""
        ...

    @abstractmethod
    def list_runs(self, page: int = 1, page_size: int = 20) -> RunPage:
        """Return one page of runs, newest first."""
        ...

    @abstractmethod
    def get_run(self, run_id: int) -> RunRecord:
        """Fetch one run.

        Raises:
            RunNotFoundError: If no run has this id.
        """
        ...

    def ping(self) -> bool:
        """Return True when the store answers queries."""
        return True
