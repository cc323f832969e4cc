"""
FastAPI contract tests.

A FakeOrchestrator is injected through dependency overrides, so these tests
exercise request validation, authentication, response shapes and NDJSON
streaming without calling any LLM or search provider.
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from config.config import BackendConfig, CombineMode, Config
from models.search_result import BackendId
from orchestrator.progress import ProgressStep, emit_safely
from server import dependencies as deps
from server.app import create_app
from server.routes.ask import _ndjson_stream
from server.schemas.requests import AskRequest
from server.schemas.responses import AskResponseDTO

from conftest import make_outcome

pytestmark = pytest.mark.integration

HEADERS = {"X-API-Key": "dev-key-1"}


class FakeOrchestrator:
    def __init__(self):
        self.backend_config = BackendConfig()
        self.calls = []

    async def orchestrate(self, query, allowed_domains=None, backend_config=None, hints=None, progress=None):
        self.calls.append(
            {
                "query": query,
                "allowed_domains": allowed_domains,
                "backend_config": backend_config,
                "hints": hints,
            }
        )
        emit_safely(progress, ProgressStep.VALIDATE_START, "Validating query relevance...")
        emit_safely(progress, ProgressStep.SEARCH_START, "Searching...", backend="tavily")
        emit_safely(progress, ProgressStep.DONE, "Search complete")
        return make_outcome(query)


class HangingOrchestrator(FakeOrchestrator):
    """Emits one event, then waits until cancelled."""

    def __init__(self):
        super().__init__()
        self.cancelled = False

    async def orchestrate(self, query, allowed_domains=None, backend_config=None, hints=None, progress=None):
        emit_safely(progress, ProgressStep.VALIDATE_START, "Validating query relevance...")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


@pytest.fixture()
def orchestrator():
    return FakeOrchestrator()


def _config(api_keys=("dev-key-1", "dev-key-2")):
    return Config(
        openai_api_key="sk-test", vector_store_id="vs_1", tavily_api_key=None, api_keys=api_keys
    )


@pytest.fixture()
def app(orchestrator, monkeypatch):
    monkeypatch.delenv("API_KEYS", raising=False)
    app = create_app()

    app.dependency_overrides[deps.get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[deps.get_config] = lambda: _config()
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


def test_health_reports_backend_credentials(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["backends"] == {"vector_store": True, "tavily": False}
    assert "X-Request-ID" in r.headers


def test_ask_requires_api_key(client):
    r = client.post("/v1/ask", json={"query": "Tuition fees?"})
    assert r.status_code == 401

    r = client.post("/v1/ask", json={"query": "Tuition fees?"}, headers={"X-API-Key": "wrong"})
    assert r.status_code == 401


def test_api_keys_come_from_config_not_process_env(client):
    r = client.post("/v1/ask", json={"query": "Tuition fees?"}, headers={"X-API-Key": "dev-key-2"})
    assert r.status_code == 200


def test_ask_without_configured_keys_is_a_server_error(app, monkeypatch):
    monkeypatch.setenv("API_KEYS", "dev-key-1")
    app.dependency_overrides[deps.get_config] = lambda: _config(api_keys=())

    r = TestClient(app).post("/v1/ask", json={"query": "Tuition fees?"}, headers=HEADERS)

    assert r.status_code == 500
    assert r.json()["detail"] == "API authentication not configured"


def test_ask_returns_answer_citations_and_diagnostics(client):
    r = client.post("/v1/ask", json={"query": "What financial aid options exist?"}, headers=HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["answer"] == "Answer to: What financial aid options exist?"
    assert body["sentinel"] == "none"
    assert body["citations"] == [
        {
            "title": "Financial Aid Policy",
            "url": "https://policy.vinuni.edu.vn/aid",
            "contentPreview": "Students may apply for...",
            "score": 0.9,
        }
    ]
    status = body["diagnostics"]["perBackendStatus"]
    assert status["vector_store"] == {"status": "skipped", "reason": "not_configured", "latencyMs": 0}
    assert status["tavily"]["status"] == "ok"
    assert body["diagnostics"]["counts"]["backendsRun"] == ["tavily"]


def test_ask_passes_request_overrides(client, orchestrator):
    payload = {
        "query": "Housing?",
        "allowed_domains": ["vinuni.edu.vn"],
        "backends": ["tavily"],
        "max_results": 3,
        "parallel": True,
        "combine_mode": "provenance",
        "hints": {"city": "Hanoi", "country": "VN"},
    }
    r = client.post("/v1/ask", json=payload, headers=HEADERS)
    assert r.status_code == 200

    call = orchestrator.calls[0]
    config = call["backend_config"]
    assert call["allowed_domains"] == ["vinuni.edu.vn"]
    assert config.enabled == frozenset({BackendId.TAVILY})
    assert config.limits_for(BackendId.VECTOR_STORE).max_results == 3
    assert config.parallel is True
    assert config.combine_mode == CombineMode.PROVENANCE
    assert call["hints"].city == "Hanoi"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"query": ""},
        {"query": "x" * 2001},
        {"query": "ok", "backends": ["bing"]},
        {"query": "ok", "max_results": 0},
        {"query": "ok", "combine_mode": "mixed"},
        {"query": "ok", "allowed_domains": []},
    ],
)
def test_ask_rejects_invalid_requests(client, payload):
    r = client.post("/v1/ask", json=payload, headers=HEADERS)
    assert r.status_code == 422


def test_stream_emits_progress_then_result(client):
    with client.stream("POST", "/v1/ask/stream", json={"query": "Tuition?"}, headers=HEADERS) as r:
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/x-ndjson")
        lines = [json.loads(line) for line in r.iter_lines() if line]

    assert [l["step"] for l in lines[:-1]] == ["validate-start", "search-start", "done"]
    assert all(l["type"] == "progress" for l in lines[:-1])
    final = lines[-1]
    assert final["type"] == "result"
    assert final["answer"] == "Answer to: Tuition?"
    assert final["citations"][0]["contentPreview"] == "Students may apply for..."


def test_stream_disconnect_cancels_every_pending_task():
    orchestrator = HangingOrchestrator()

    async def disconnect_after_first_event():
        stream = _ndjson_stream(orchestrator, AskRequest(query="Tuition?"))
        first = json.loads(await stream.__anext__())

        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0.05)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        await asyncio.sleep(0.01)
        return first, asyncio.all_tasks() - {asyncio.current_task()}

    first, leftover = asyncio.run(disconnect_after_first_event())

    assert first["step"] == "validate-start"
    assert leftover == set()
    assert orchestrator.cancelled

def test_dto_mapping_smoke():
    dto = AskResponseDTO.from_outcome(make_outcome("q"))
    dumped = dto.model_dump(by_alias=True)
    assert dumped["sentinel"] == "none"
    assert dumped["latency_ms"] == 42
    assert dumped["citations"][0]["contentPreview"]
