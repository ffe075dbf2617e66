"""Unit tests for RunRecorder and Settings."""

from dataclasses import FrozenInstanceError

import pytest
from conftest import MemoryRunStore, make_matches

from ragtrace.config.settings import Settings
from ragtrace.core.domain import Step, StepStatus
from ragtrace.core.domain.exceptions import PersistenceError
from ragtrace.core.services.run_recorder import RunRecorder
from ragtrace.core.services.run_state import PipelineState, RunState

pytestmark = pytest.mark.unit


def make_state(**overrides):
    state = RunState(question="q", topk=5, threshold=0.4, started_at=100.0, **overrides)
    state.ledger.upsert(Step("received", "Question received", StepStatus.DONE, "q"))
    return state


class TestRunRecorder:
    def test_build_from_state(self):
        state = make_state(sources=make_matches(3), answer="text")
        state.phase = PipelineState.DONE
        record = RunRecorder(MemoryRunStore(), clock=lambda: 100.25).build(state)

        assert record.answer == "text"
        assert record.matched_count == 3
        assert record.duration_ms == 250
        assert [s.key for s in record.steps] == ["received"]

    def test_empty_answer_becomes_none_and_duration_never_negative(self):
        record = RunRecorder(MemoryRunStore(), clock=lambda: 50.0).build(make_state())
        assert record.answer is None
        assert record.duration_ms == 0

    @pytest.mark.asyncio
    async def test_persist_returns_copy_with_id(self):
        store = MemoryRunStore()
        recorder = RunRecorder(store)
        built = recorder.build(make_state())

        record = await recorder.persist(built)

        assert record.id == 1
        assert built.id is None
        assert store.records == [record]

    def test_record_is_immutable(self):
        record = RunRecorder(MemoryRunStore()).build(make_state())
        with pytest.raises(FrozenInstanceError):
            record.id = 7

    @pytest.mark.asyncio
    async def test_unexpected_store_error_is_wrapped(self):
        class BrokenStore(MemoryRunStore):
            def insert_run(self, record):
                raise OSError("read-only filesystem")

        recorder = RunRecorder(BrokenStore())
        with pytest.raises(PersistenceError) as info:
            await recorder.persist(recorder.build(make_state()))
        assert isinstance(info.value.cause, OSError)


class TestSettings:
    def test_secrets_are_sanitized(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "\ufeff  abc123 ")
        assert Settings(_env_file=None).google_api_key == "abc123"

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DEFAULT_TOP_K", raising=False)
        settings = Settings(_env_file=None, data_dir=tmp_path)
        assert settings.default_top_k == 5
        assert settings.max_top_k == 20
        assert settings.default_threshold == 0.4
        assert settings.runs_db_path == tmp_path / "runs.db"

    def test_default_top_k_cannot_exceed_maximum(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_top_k=30, max_top_k=20)
