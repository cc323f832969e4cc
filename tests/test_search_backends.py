from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from config.config import Config
from models.errors import BackendError, BackendNotConfigured
from models.search_result import BackendId, SearchDepth
from tools.search.factory import create_backends_from_config
from tools.search.tavily_backend import TavilySearchBackend
from tools.search.vector_store_backend import VectorStoreSearchBackend

pytestmark = pytest.mark.unit


# -------------------------------------------------------------------
# Tavily
# -------------------------------------------------------------------


class FakeTavilyClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    def search(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def test_tavily_normalizes_results():
    client = FakeTavilyClient(
        {
            "results": [
                {
                    "title": "Financial Aid",
                    "url": "https://policy.vinuni.edu.vn/aid",
                    "content": "snippet",
                    "raw_content": "full text",
                    "score": "0.87",
                },
                {"url": "https://policy.vinuni.edu.vn/untitled", "content": "only snippet"},
                {"title": "no url"},
                "garbage",
            ]
        }
    )
    backend = TavilySearchBackend(api_key=None, client=client)

    results = backend.search("site:policy.vinuni.edu.vn aid", limit=5, depth=SearchDepth.BASIC)

    assert [r.url for r in results] == [
        "https://policy.vinuni.edu.vn/aid",
        "https://policy.vinuni.edu.vn/untitled",
    ]
    assert results[0].content == "full text"
    assert results[0].relevance_score == 0.87
    assert results[0].source_backend == BackendId.TAVILY
    assert results[1].title == "https://policy.vinuni.edu.vn/untitled"
    assert results[1].relevance_score == 0.0
    assert client.kwargs["search_depth"] == "basic"
    assert client.kwargs["max_results"] == 5
    assert client.kwargs["include_answer"] is False


def test_tavily_respects_limit():
    items = [{"url": f"https://vinuni.edu.vn/{i}"} for i in range(8)]
    backend = TavilySearchBackend(api_key=None, client=FakeTavilyClient({"results": items}))
    assert len(backend.search("q", limit=3)) == 3


def test_tavily_empty_results():
    backend = TavilySearchBackend(api_key=None, client=FakeTavilyClient({"results": []}))
    assert backend.search("q", limit=3) == []


@pytest.mark.parametrize("payload", ["not a dict", {"results": "nope"}])
def test_tavily_malformed_payload(payload):
    backend = TavilySearchBackend(api_key=None, client=FakeTavilyClient(payload))
    with pytest.raises(BackendError) as exc:
        backend.search("q", limit=3)
    assert exc.value.code == "malformed"


@pytest.mark.parametrize(
    "error, code", [(TimeoutError("slow"), "timeout"), (RuntimeError("500"), "provider_error")]
)
def test_tavily_errors_are_mapped(error, code):
    backend = TavilySearchBackend(api_key=None, client=FakeTavilyClient(error=error))
    with pytest.raises(BackendError) as exc:
        backend.search("q", limit=3)
    assert exc.value.code == code
    assert exc.value.backend == BackendId.TAVILY


def test_tavily_requires_api_key():
    with pytest.raises(BackendNotConfigured) as exc:
        TavilySearchBackend(api_key=None)
    assert exc.value.missing == "TAVILY_API_KEY"


# -------------------------------------------------------------------
# Vector store
# -------------------------------------------------------------------


def _vector_client(page=None, error=None):
    client = MagicMock()
    if error is not None:
        client.vector_stores.search.side_effect = error
    else:
        client.vector_stores.search.return_value = page
    return client


def _hit(file_id, score=0.5, url=None, filename="handbook.pdf", chunks=("chunk",)):
    return SimpleNamespace(
        file_id=file_id,
        filename=filename,
        score=score,
        attributes={"url": url} if url else {},
        content=[SimpleNamespace(type="text", text=c) for c in chunks],
    )


def test_vector_store_normalizes_results():
    page = SimpleNamespace(
        data=[
            _hit("file_1", 0.8, url="https://policy.vinuni.edu.vn/handbook", chunks=("a", "b")),
            _hit("file_2", 0.4),
            SimpleNamespace(file_id=None),
        ]
    )
    client = _vector_client(page)
    backend = VectorStoreSearchBackend(api_key=None, vector_store_id="vs_test", client=client)

    results = backend.search("housing rules", limit=5)

    assert [r.url for r in results] == [
        "https://policy.vinuni.edu.vn/handbook",
        "vector-store://vs_test/file_2",
    ]
    assert results[0].content == "a\nb"
    assert results[0].title == "handbook.pdf"
    assert results[0].source_backend == BackendId.VECTOR_STORE
    kwargs = client.vector_stores.search.call_args.kwargs
    assert kwargs["vector_store_id"] == "vs_test"
    assert kwargs["max_num_results"] == 5
    assert kwargs["rewrite_query"] is True


def test_vector_store_malformed_page():
    backend = VectorStoreSearchBackend(
        api_key=None, vector_store_id="vs_test", client=_vector_client(SimpleNamespace(data=None))
    )
    with pytest.raises(BackendError) as exc:
        backend.search("q", limit=5)
    assert exc.value.code == "malformed"


def test_vector_store_errors_are_mapped():
    request = httpx.Request("POST", "https://api.openai.com/v1/vector_stores/vs_test/search")
    timeout = openai.APITimeoutError(request=request)
    backend = VectorStoreSearchBackend(
        api_key=None, vector_store_id="vs_test", client=_vector_client(error=timeout)
    )
    with pytest.raises(BackendError) as exc:
        backend.search("q", limit=5)
    assert exc.value.code == "timeout"

    connection = openai.APIConnectionError(request=request)
    backend.client = _vector_client(error=connection)
    with pytest.raises(BackendError) as exc:
        backend.search("q", limit=5)
    assert exc.value.code == "provider_error"


@pytest.mark.parametrize(
    "api_key, store_id, missing",
    [("sk-test", None, "VECTOR_STORE_ID"), (None, "vs_test", "OPENAI_API_KEY")],
)
def test_vector_store_requires_credentials(api_key, store_id, missing):
    with pytest.raises(BackendNotConfigured) as exc:
        VectorStoreSearchBackend(api_key=api_key, vector_store_id=store_id)
    assert exc.value.missing == missing


def test_installed_openai_sdk_has_vector_store_search():
    client = openai.OpenAI(api_key="sk-test")
    assert callable(client.vector_stores.search)


# -------------------------------------------------------------------
# Factory
# -------------------------------------------------------------------


def test_factory_maps_missing_credentials_to_none():
    backends = create_backends_from_config(Config(openai_api_key=None, vector_store_id=None))
    assert backends == {BackendId.VECTOR_STORE: None, BackendId.TAVILY: None}


def test_factory_builds_vector_store_without_tavily():
    backends = create_backends_from_config(Config(openai_api_key="sk-test", vector_store_id="vs_1"))
    assert isinstance(backends[BackendId.VECTOR_STORE], VectorStoreSearchBackend)
    assert backends[BackendId.TAVILY] is None
