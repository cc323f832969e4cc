"""Search backend adapters for the retrieval orchestrator."""

from .contracts import SearchBackend
from .factory import create_backends_from_config
from .tavily_backend import TavilySearchBackend
from .vector_store_backend import VectorStoreSearchBackend

__all__ = [
    "SearchBackend",
    "TavilySearchBackend",
    "VectorStoreSearchBackend",
    "create_backends_from_config",
]
