import time

import pytest

from models.answer import CitationRecord, Sentinel
from models.errors import BackendError
from models.outcome import BackendDiagnostics, BackendStatus, Diagnostics, OrchestrationOutcome
from models.search_result import BackendId, SearchDepth, SearchResult
from tools.search.contracts import SearchBackend


def make_result(url: str, score: float = 0.5, backend: BackendId = BackendId.TAVILY, **kwargs):
    return SearchResult(
        title=kwargs.pop("title", url.rsplit("/", 1)[-1] or url),
        url=url,
        source_backend=backend,
        content=kwargs.pop("content", f"content of {url}"),
        relevance_score=score,
    )


class FakeLLM:
    """
    Deterministic stand-in for the classify/generate capabilities.

    ``classify_response``/``generate_response`` may be a string, a callable
    taking the prompt, or an exception instance to raise.
    """

    def __init__(self, classify_response="VALID", generate_response="Answer.", keywords=None, delay_s=0.0):
        self.classify_response = classify_response
        self.generate_response = generate_response
        self.keywords = keywords
        self.delay_s = delay_s
        self.classify_prompts: list[str] = []
        self.generate_prompts: list[str] = []

    @staticmethod
    def _respond(response, prompt):
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(prompt)
        return response

    def classify(self, prompt: str) -> str:
        self.classify_prompts.append(prompt)
        if self.keywords is not None and "keyword extraction" in prompt:
            return self.keywords
        return self._respond(self.classify_response, prompt)

    def generate(self, prompt: str) -> str:
        self.generate_prompts.append(prompt)
        if self.delay_s:
            time.sleep(self.delay_s)
        return self._respond(self.generate_response, prompt)


class FakeBackend(SearchBackend):
    """
    In-memory search backend.

    ``responses`` maps a query expression prefix (``"site:"`` or ``"*"`` for
    anything else) to the results returned; ``error`` is raised on every call.
    """

    def __init__(
        self,
        backend_id: BackendId,
        responses=None,
        error: Exception | None = None,
        domain_scoped: bool | None = None,
        display_name: str | None = None,
        delay_s: float = 0.0,
    ):
        self.backend_id = backend_id
        self.domain_scoped = (
            backend_id == BackendId.TAVILY if domain_scoped is None else domain_scoped
        )
        self.display_name = display_name or backend_id.value
        self.responses = responses or {}
        self.error = error
        self.delay_s = delay_s
        self.calls: list[tuple[str, int, SearchDepth]] = []

    def search(self, query_expression, limit, depth=SearchDepth.ADVANCED):
        self.calls.append((query_expression, limit, depth))
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        key = "site:" if query_expression.startswith("site:") else "*"
        return list(self.responses.get(key, []))[:limit]


def backend_error(backend_id: BackendId, code: str = "provider_error") -> BackendError:
    return BackendError(backend_id, "boom", code=code)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable Config.from_env reads so tests start from defaults."""
    for name in (
        "LLM_PROVIDER",
        "OPENAI_API_KEY",
        "GOOGLE_GEMINI_API_KEY",
        "CLASSIFIER_MODEL",
        "GENERATION_MODEL",
        "LLM_TIMEOUT_S",
        "TAVILY_API_KEY",
        "VECTOR_STORE_ID",
        "ALLOWED_DOMAINS",
        "PRIMARY_DOMAIN",
        "ENABLED_BACKENDS",
        "MAX_RESULTS_PER_BACKEND",
        "SEARCH_DEPTH",
        "BACKEND_TIMEOUT_S",
        "EVIDENCE_CAP",
        "PARALLEL_BACKENDS",
        "COMBINE_MODE",
        "ENABLE_KEYWORD_EXTRACTION",
        "API_KEYS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def mock_env(clean_env):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "LLM_PROVIDER": "openai",
        "OPENAI_API_KEY": "test-openai-key",
        "TAVILY_API_KEY": "test-tavily-key",
        "VECTOR_STORE_ID": "vs_test",
        "API_KEYS": "dev-key-1,dev-key-2",
    }
    for key, value in env_vars.items():
        clean_env.setenv(key, value)
    return env_vars


def make_outcome(query: str) -> OrchestrationOutcome:
    return OrchestrationOutcome(
        request_id="req_1",
        text=f"Answer to: {query}",
        sentinel=Sentinel.NONE,
        citations=(
            CitationRecord(
                title="Financial Aid Policy",
                url="https://policy.vinuni.edu.vn/aid",
                content_preview="Students may apply for...",
                score=0.9,
            ),
        ),
        diagnostics=Diagnostics(
            per_backend=(
                BackendDiagnostics(BackendId.VECTOR_STORE, BackendStatus.SKIPPED, reason="not_configured"),
                BackendDiagnostics(BackendId.TAVILY, BackendStatus.OK, raw_count=2, filtered_count=1),
            ),
            evidence_count=1,
        ),
        latency_ms=42,
    )
