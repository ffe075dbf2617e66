"""
Pytest configuration and shared fixtures.

The collaborators below are in-memory stand-ins for Gemini, Qdrant and
SQLite so the pipeline can be exercised without network access.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from dataclasses import replace

import pytest

from ragtrace.core.domain import RunPage, RunRecord, SourceMatch
from ragtrace.core.domain.exceptions import PersistenceError, RunNotFoundError
from ragtrace.core.ports import EmbeddingPort, LLMPort, RetrievalPort, RunStorePort, ToolPort
from ragtrace.core.services.pipeline import AskPipeline, PipelineLimits
from ragtrace.core.services.run_recorder import RunRecorder
from ragtrace.core.services.tools import SearchDocsTool


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (FastAPI app, SQLite)")


class FakeEmbedder(EmbeddingPort):
    def __init__(self, vector=None, error=None, delay=0.0):
        self.vector = [0.1, 0.2, 0.3] if vector is None else vector
        self.error = error
        self.delay = delay
        self.calls = []

    async def embed(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.vector)


class FakeRetriever(RetrievalPort):
    def __init__(self, rows=None, error=None, delay=0.0, reachable=True):
        self.rows = rows if rows is not None else []
        self.reachable = reachable
        self.error = error
        self.delay = delay
        self.calls = []

    async def search(self, vector, threshold, limit):
        self.calls.append((vector, threshold, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.rows)

    async def ping(self):
        return self.reachable


class FakeLLM(LLMPort):
    """Yields ``fragments`` then optionally fails; records whether it was closed."""

    def __init__(self, fragments=None, error=None, delay=0.0):
        self.fragments = fragments if fragments is not None else ["Hello", " world"]
        self.error = error
        self.delay = delay
        self.messages = None
        self.closed = False

    async def generate_stream(self, messages) -> AsyncIterator[str]:
        self.messages = messages
        try:
            for fragment in self.fragments:
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield fragment
            if self.error:
                raise self.error
        finally:
            self.closed = True


class FailingTool(ToolPort):
    name = "searchDocs"

    async def run(self, matches):
        raise RuntimeError("tool exploded")


class MemoryRunStore(RunStorePort):
    def __init__(self, fail=False):
        self.records: list[RunRecord] = []
        self.fail = fail

    def insert_run(self, record):
        if self.fail:
            raise PersistenceError("disk full")
        run_id = len(self.records) + 1
        self.records.append(replace(record, id=run_id))
        return run_id

    def list_runs(self, page=1, page_size=20):
        newest = list(reversed(self.records))
        start = (page - 1) * page_size
        return RunPage(
            items=newest[start : start + page_size],
            total=len(self.records),
            page=page,
            page_size=page_size,
        )

    def get_run(self, run_id):
        if not 0 < run_id <= len(self.records):
            raise RunNotFoundError(f"Run {run_id} not found")
        return self.records[run_id - 1]


def make_matches(count=2):
    return [
        SourceMatch(id=i + 1, document_id=10 + i, content=f"fragment {i + 1}", similarity=0.9 - i / 10)
        for i in range(count)
    ]


def parse_lines(lines):
    """Decode wire lines into event dicts."""
    assert all(line.endswith("\n") and line.count("\n") == 1 for line in lines)
    return [json.loads(line) for line in lines]


async def collect(agen):
    return [line async for line in agen]


@pytest.fixture
def store():
    return MemoryRunStore()


@pytest.fixture
def make_pipeline(store):
    """Build a pipeline from fakes; override any collaborator by keyword."""

    def _make(
        embedder=None,
        retriever=None,
        llm=None,
        tool=None,
        run_store=None,
        **limits,
    ):
        return AskPipeline(
            embedder=embedder or FakeEmbedder(),
            retriever=retriever or FakeRetriever(rows=make_matches()),
            llm=llm or FakeLLM(),
            recorder=RunRecorder(run_store or store),
            tool=tool or SearchDocsTool(delay_seconds=0),
            limits=PipelineLimits(**limits),
        )

    return _make
