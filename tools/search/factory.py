"""Factory for the search backends available to this process."""

from config.config import BACKEND_ORDER, Config
from models.errors import BackendNotConfigured
from models.search_result import BackendId
from utils.logger import get_logger

from .contracts import SearchBackend
from .tavily_backend import TavilySearchBackend
from .vector_store_backend import VectorStoreSearchBackend

logger = get_logger(__name__)

DISPLAY_NAMES = {
    BackendId.VECTOR_STORE: VectorStoreSearchBackend.display_name,
    BackendId.TAVILY: TavilySearchBackend.display_name,
}


def create_backends_from_config(config: Config) -> dict[BackendId, SearchBackend | None]:
    """
    Build one adapter per known backend.

    A backend whose credential is missing maps to ``None``: the orchestrator
    reports it as skipped for the lifetime of the process.
    """
    backends: dict[BackendId, SearchBackend | None] = {}

    for backend_id in BACKEND_ORDER:
        timeout_s = config.backend_config.limits_for(backend_id).timeout_s
        try:
            if backend_id == BackendId.VECTOR_STORE:
                backends[backend_id] = VectorStoreSearchBackend(
                    api_key=config.openai_api_key,
                    vector_store_id=config.vector_store_id,
                    timeout_s=timeout_s,
                )
            elif backend_id == BackendId.TAVILY:
                backends[backend_id] = TavilySearchBackend(
                    api_key=config.tavily_api_key,
                    timeout_s=timeout_s,
                )
        except BackendNotConfigured as e:
            logger.warning(
                f"Search backend unavailable: {e}",
                extra={"extra_fields": {"backend": backend_id.value, "missing": e.missing}},
            )
            backends[backend_id] = None

    available = [b.value for b, adapter in backends.items() if adapter is not None]
    logger.info(f"Search backends available: {available or 'none'}")
    return backends
