"""Integration tests for FastAPI endpoints.

The app runs with in-memory collaborators and a temporary SQLite run store
injected through ``dependency_overrides``.
"""

import json

import pytest
from conftest import FakeRetriever
from fastapi.testclient import TestClient

from ragtrace.adapters.inbound.api import deps
from ragtrace.adapters.inbound.api.main import app
from ragtrace.adapters.outbound.sqlite_adapter import SQLiteRunStore
from ragtrace.core.services.prompts import NO_MATCH_ANSWER

pytestmark = pytest.mark.integration


@pytest.fixture
def run_store(tmp_path):
    return SQLiteRunStore(tmp_path / "runs.db")


@pytest.fixture
def client(make_pipeline, run_store):
    """Create test client with mocked dependencies."""
    pipeline = make_pipeline(run_store=run_store)
    app.dependency_overrides[deps.get_pipeline] = lambda: pipeline
    app.dependency_overrides[deps.get_run_store] = lambda: run_store
    app.dependency_overrides[deps.get_retriever] = lambda: FakeRetriever()
    yield TestClient(app)
    app.dependency_overrides.clear()


def read_events(response):
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_readiness_check(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["run_store"] == "connected"
        assert data["vector_store"] == "connected"

    def test_readiness_degraded_when_vector_store_unreachable(self, client):
        app.dependency_overrides[deps.get_retriever] = lambda: FakeRetriever(reachable=False)

        response = client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["run_store"] == "connected"
        assert data["vector_store"] == "unreachable"


class TestAskEndpoint:
    """Tests for the streaming ask endpoint."""

    def test_streams_ndjson_trace(self, client):
        response = client.post("/api/v1/ask", json={"question": "What is X?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.endswith("\n")
        events = read_events(response)
        assert events[0] == {
            "type": "step",
            "data": {"id": "received", "title": "Question received", "status": "pending"},
        }
        assert "".join(e["data"] for e in events if e["type"] == "delta") == "Hello world"
        assert events[-1]["data"]["id"] == "generating"
        assert events[-1]["data"]["status"] == "done"

    def test_topk_alias_and_history(self, client, make_pipeline, run_store):
        retriever = FakeRetriever(rows=[{"id": 1, "content": "c", "score": 0.9}])
        app.dependency_overrides[deps.get_pipeline] = lambda: make_pipeline(
            retriever=retriever, run_store=run_store
        )

        response = client.post(
            "/api/v1/ask",
            json={
                "question": "q",
                "topK": 3,
                "threshold": "high",
                "history": [{"role": "user", "content": "before"}],
            },
        )

        assert response.status_code == 200
        assert retriever.calls[0][1:] == (0.4, 3)

    @pytest.mark.parametrize("body", [{}, {"question": ""}, {"question": "   "}])
    def test_missing_question_is_rejected(self, client, run_store, body):
        response = client.post("/api/v1/ask", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "EmptyQuestionError"
        assert run_store.list_runs().total == 0

    def test_too_long_question_is_rejected(self, client):
        response = client.post("/api/v1/ask", json={"question": "x" * 5000})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "RT_VAL_003"

    def test_malformed_body_is_rejected(self, client):
        response = client.post(
            "/api/v1/ask",
            content=b"not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "InputError"

    def test_no_matches(self, client, make_pipeline, run_store):
        app.dependency_overrides[deps.get_pipeline] = lambda: make_pipeline(
            retriever=FakeRetriever(rows=[]), run_store=run_store
        )

        events = read_events(client.post("/api/v1/ask", json={"question": "q"}))

        assert events[-1] == {"type": "delta", "data": NO_MATCH_ANSWER}
        assert run_store.get_run(1).answer == NO_MATCH_ANSWER


class TestRunsEndpoints:
    """Tests for the run history endpoints."""

    def test_list_and_fetch_runs(self, client):
        client.post("/api/v1/ask", json={"question": "first"})
        client.post("/api/v1/ask", json={"question": "second"})

        response = client.get("/api/v1/runs", params={"page": 1, "page_size": 1})
        assert response.status_code == 200
        page = response.json()
        assert page["total"] == 2
        assert page["page_size"] == 1
        assert [item["question"] for item in page["items"]] == ["second"]
        assert "steps" not in page["items"][0]

        run_id = page["items"][0]["id"]
        detail = client.get(f"/api/v1/runs/{run_id}").json()
        assert detail["answer"] == "Hello world"
        assert detail["matched_count"] == len(detail["sources"]) == 2
        assert [s["id"] for s in detail["steps"]] == [
            "received",
            "embedding",
            "retrieving",
            "tool_invoking",
            "generating",
        ]

    def test_unknown_run(self, client):
        response = client.get("/api/v1/runs/12345")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "RunNotFoundError"

    @pytest.mark.parametrize("params", [{"page": 0}, {"page_size": 101}])
    def test_invalid_paging(self, client, params):
        assert client.get("/api/v1/runs", params=params).status_code == 400
