"""
Domain models for the retrieval orchestrator.
"""

from .answer import Answer, CitationRecord, Sentinel
from .errors import (
    BackendError,
    BackendNotConfigured,
    ClassificationFailure,
    GenerationFailure,
    LLMClientError,
    RetrievalError,
)
from .outcome import BackendDiagnostics, BackendStatus, Diagnostics, OrchestrationOutcome
from .search_result import BackendId, RequestHints, SearchDepth, SearchResult

__all__ = [
    "Answer",
    "BackendDiagnostics",
    "BackendError",
    "BackendId",
    "BackendNotConfigured",
    "BackendStatus",
    "CitationRecord",
    "ClassificationFailure",
    "Diagnostics",
    "GenerationFailure",
    "LLMClientError",
    "OrchestrationOutcome",
    "RequestHints",
    "RetrievalError",
    "SearchDepth",
    "SearchResult",
    "Sentinel",
]
