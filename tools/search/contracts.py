"""Uniform contract every search backend adapter implements."""

from abc import ABC, abstractmethod

from models.search_result import BackendId, SearchDepth, SearchResult


class SearchBackend(ABC):
    """
    Wraps one external search provider behind "ranked results for a query".

    Adapters normalize provider payloads into ``SearchResult`` and raise
    ``BackendError`` on remote errors, timeouts or malformed payloads.
    """

    backend_id: BackendId
    display_name: str = ""
    # Domain-scoped backends (web search) also run an unrestricted query whose
    # results must pass the domain filter.
    domain_scoped: bool = False

    @abstractmethod
    def search(
        self, query_expression: str, limit: int, depth: SearchDepth = SearchDepth.ADVANCED
    ) -> list[SearchResult]:
        """Return at most ``limit`` results, best first."""
