"""Tavily web search backend.

Tavily renders and extracts page content server-side, so one call returns
ranked, scored documents with their text. This backend is domain-scoped: the
orchestrator sends it both a ``site:`` restricted query and an unrestricted one.
"""

from typing import Any

from models.errors import BackendError, BackendNotConfigured
from models.search_result import BackendId, SearchDepth, SearchResult
from utils.logger import get_logger

from .contracts import SearchBackend

logger = get_logger(__name__)


class TavilySearchBackend(SearchBackend):
    backend_id = BackendId.TAVILY
    display_name = "Policy Documents"
    domain_scoped = True

    def __init__(self, api_key: str | None, timeout_s: float = 15.0, client: Any = None):
        """
        Initialize the Tavily backend.

        Args:
            api_key: Tavily API key
            timeout_s: Request timeout passed to Tavily
            client: Pre-built client exposing ``search(**kwargs) -> dict`` (tests)

        Raises:
            BackendNotConfigured: If no API key is given
        """
        if not api_key and client is None:
            raise BackendNotConfigured(self.backend_id, "TAVILY_API_KEY")

        self.timeout_s = timeout_s

        if client is None:
            # Lazy import so tests and vector-store-only deployments don't need tavily
            try:
                from tavily import TavilyClient
            except ModuleNotFoundError as e:
                raise ModuleNotFoundError(
                    "Dependency 'tavily' is not installed. Install it with: pip install tavily-python"
                ) from e
            client = TavilyClient(api_key=api_key)
            logger.info("Tavily client initialized")

        self.client = client

    def search(
        self, query_expression: str, limit: int, depth: SearchDepth = SearchDepth.ADVANCED
    ) -> list[SearchResult]:
        logger.info(
            f"Tavily search: '{query_expression[:100]}' (max_results={limit}, depth={depth.value})"
        )

        try:
            response = self.client.search(
                query=query_expression,
                max_results=limit,
                search_depth=depth.value,
                include_answer=False,  # We generate our own answer
                include_images=False,
                include_raw_content="text",
                timeout=max(1, int(self.timeout_s)),
            )
        except TimeoutError as e:
            raise BackendError(self.backend_id, f"request timed out: {e}", code="timeout") from e
        except Exception as e:
            raise BackendError(self.backend_id, f"{type(e).__name__}: {e}") from e

        if not isinstance(response, dict):
            raise BackendError(
                self.backend_id, f"unexpected payload type {type(response).__name__}", code="malformed"
            )
        items = response.get("results") or []
        if not isinstance(items, list):
            raise BackendError(self.backend_id, "'results' is not a list", code="malformed")

        results = []
        for item in items[:limit]:
            result = self._normalize(item)
            if result is not None:
                results.append(result)

        logger.info(f"Tavily returned {len(results)} results")
        return results

    def _normalize(self, item: Any) -> SearchResult | None:
        if not isinstance(item, dict):
            return None
        url = str(item.get("url") or "").strip()
        if not url:
            return None
        content = item.get("raw_content") or item.get("content") or ""
        return SearchResult(
            title=str(item.get("title") or "").strip() or url,
            url=url,
            source_backend=self.backend_id,
            content=str(content).strip(),
            relevance_score=item.get("score") or 0.0,
        )
