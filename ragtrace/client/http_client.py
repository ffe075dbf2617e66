"""HTTP client for a running RagTrace API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

from ..core.domain import RunPage, RunRecord
from .reducer import TraceReducer, TraceState

logger = logging.getLogger(__name__)


class RagTraceClient:
    """Thin wrapper over the REST endpoints.

    ``ask`` streams the NDJSON response straight into a ``TraceReducer`` so
    callers can render partial state as chunks arrive.
    """

    def __init__(self, base_url: str = "http://127.0.0.1:8000", timeout: float = 120.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def ask(
        self,
        question: str,
        history: list[dict[str, str]] | None = None,
        topk: int | None = None,
        threshold: float | None = None,
        on_update: Callable[[TraceState], None] | None = None,
    ) -> TraceState:
        """Ask a question and return the final reconstructed trace.

        Args:
            question: The user question.
            history: Prior turns as ``{"role", "content"}`` dicts.
            topk: Optional number of fragments to retrieve.
            threshold: Optional similarity threshold.
            on_update: Called with the new state after every chunk.

        Raises:
            requests.HTTPError: If the server rejects the request.
        """
        payload: dict[str, Any] = {"question": question, "history": history or []}
        if topk is not None:
            payload["topk"] = topk
        if threshold is not None:
            payload["threshold"] = threshold

        reducer = TraceReducer()
        with self.session.post(
            f"{self.base_url}/api/v1/ask",
            json=payload,
            stream=True,
            timeout=self.timeout,
        ) as response:
            response.raise_for_status()
            try:
                for chunk in response.iter_content(chunk_size=None):
                    if not chunk:
                        continue
                    state = reducer.feed(chunk)
                    if on_update:
                        on_update(state)
            finally:
                state = reducer.close()

        if on_update:
            on_update(state)
        return state

    def list_runs(self, page: int = 1, page_size: int = 20) -> RunPage:
        response = self.session.get(
            f"{self.base_url}/api/v1/runs",
            params={"page": page, "page_size": page_size},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        return RunPage(
            items=[RunRecord.from_dict(item) for item in data["items"]],
            total=data["total"],
            page=data["page"],
            page_size=data["page_size"],
        )

    def get_run(self, run_id: int) -> RunRecord:
        response = self.session.get(f"{self.base_url}/api/v1/runs/{run_id}", timeout=self.timeout)
        response.raise_for_status()
        return RunRecord.from_dict(response.json())
