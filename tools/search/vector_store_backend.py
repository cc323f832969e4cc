"""Semantic search over the internal file corpus (OpenAI vector store)."""

from typing import Any

import openai

from models.errors import BackendError, BackendNotConfigured
from models.search_result import BackendId, SearchDepth, SearchResult
from utils.logger import get_logger

from .contracts import SearchBackend

logger = get_logger(__name__)


class VectorStoreSearchBackend(SearchBackend):
    """
    Searches the uploaded university files.

    Results are already scoped to the corpus, so this backend receives the raw
    query and its results never go through the domain filter.
    """

    backend_id = BackendId.VECTOR_STORE
    display_name = "File Database Results"
    domain_scoped = False

    def __init__(
        self,
        api_key: str | None,
        vector_store_id: str | None,
        timeout_s: float = 15.0,
        client: Any = None,
    ):
        if not vector_store_id:
            raise BackendNotConfigured(self.backend_id, "VECTOR_STORE_ID")
        if not api_key and client is None:
            raise BackendNotConfigured(self.backend_id, "OPENAI_API_KEY")

        self.vector_store_id = vector_store_id
        self.client = client or openai.OpenAI(api_key=api_key, timeout=timeout_s, max_retries=1)

    def search(
        self, query_expression: str, limit: int, depth: SearchDepth = SearchDepth.ADVANCED
    ) -> list[SearchResult]:
        logger.info(
            f"Vector store search: '{query_expression[:100]}' "
            f"(store={self.vector_store_id}, max_results={limit})"
        )

        try:
            page = self.client.vector_stores.search(
                vector_store_id=self.vector_store_id,
                query=query_expression,
                max_num_results=limit,
                # Advanced depth lets the provider rewrite the query for recall
                rewrite_query=depth == SearchDepth.ADVANCED,
            )
        except openai.APITimeoutError as e:
            raise BackendError(self.backend_id, f"request timed out: {e}", code="timeout") from e
        except openai.OpenAIError as e:
            raise BackendError(self.backend_id, f"{type(e).__name__}: {e}") from e

        items = getattr(page, "data", None)
        if not isinstance(items, list):
            raise BackendError(self.backend_id, "search page has no result list", code="malformed")

        results = []
        for item in items[:limit]:
            result = self._normalize(item)
            if result is not None:
                results.append(result)

        logger.info(f"Vector store returned {len(results)} results")
        return results

    def _normalize(self, item: Any) -> SearchResult | None:
        file_id = getattr(item, "file_id", None)
        if not file_id:
            return None

        attributes = getattr(item, "attributes", None) or {}
        url = str(attributes.get("url") or "").strip()
        if not url:
            url = f"vector-store://{self.vector_store_id}/{file_id}"

        chunks = getattr(item, "content", None) or []
        content = "\n".join(
            getattr(chunk, "text", "") for chunk in chunks if getattr(chunk, "type", "text") == "text"
        )

        return SearchResult(
            title=getattr(item, "filename", None) or str(attributes.get("title") or file_id),
            url=url,
            source_backend=self.backend_id,
            content=content.strip(),
            relevance_score=getattr(item, "score", 0.0),
        )
