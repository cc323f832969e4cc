"""Exception taxonomy for the retrieval pipeline.

None of these reach the orchestrator's caller: each is recovered at the
component boundary that owns it.
"""

from models.search_result import BackendId


class RetrievalError(Exception):
    """Base exception for all retrieval pipeline errors."""


class BackendError(RetrievalError):
    """A search backend call errored, timed out or returned a malformed payload."""

    VALID_CODES = {"timeout", "provider_error", "malformed"}

    def __init__(self, backend: BackendId, message: str, code: str = "provider_error"):
        super().__init__(f"[{backend.value}] {message}")
        self.backend = backend
        self.message = message
        self.code = code if code in self.VALID_CODES else "provider_error"


class BackendNotConfigured(RetrievalError):
    """A backend's credential is absent; the backend is skipped for the process lifetime."""

    def __init__(self, backend: BackendId, missing: str):
        super().__init__(f"{backend.value} backend not configured: {missing} is not set")
        self.backend = backend
        self.missing = missing


class LLMClientError(RetrievalError):
    """An LLM provider call failed or returned no text."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ClassificationFailure(RetrievalError):
    """The classify capability could not produce a verdict."""


class GenerationFailure(RetrievalError):
    """The generate capability could not produce an answer."""
