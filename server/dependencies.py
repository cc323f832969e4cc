"""FastAPI dependencies for authentication, configuration and orchestrator access."""

from fastapi import Depends, Header, HTTPException, Request, status

from server.utils import redact_sensitive_headers
from utils.logger import get_logger

logger = get_logger(__name__)


def get_config():
    """Dependency to get the process-wide configuration (loaded once)."""
    from config.config import Config

    if not hasattr(get_config, "_instance"):
        get_config._instance = Config.from_env()
    return get_config._instance


async def get_api_key(
    request: Request,
    x_api_key: str | None = Header(None),
    config=Depends(get_config),
):
    """Validate API key from X-API-Key header against the configured keys."""
    request_id = getattr(request.state, "request_id", "unknown")
    redacted_headers = redact_sensitive_headers(dict(request.headers))

    if not config.api_keys:
        logger.error(
            "API authentication not configured",
            extra={"extra_fields": {"request_id": request_id, "headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication not configured",
        )

    if not x_api_key or x_api_key not in config.api_keys:
        logger.warning(
            "API authentication failed",
            extra={"extra_fields": {"request_id": request_id, "headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key"
        )

    return x_api_key


def get_orchestrator():
    """Dependency to get orchestrator instance (singleton pattern)."""
    from orchestrator.core import RetrievalOrchestrator

    if not hasattr(get_orchestrator, "_instance"):
        try:
            get_orchestrator._instance = RetrievalOrchestrator.from_config(get_config())
        except ValueError as e:
            logger.error(f"Orchestrator unavailable: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Answering service is not configured",
            ) from e
    return get_orchestrator._instance
