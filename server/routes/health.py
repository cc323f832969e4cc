"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from server.dependencies import get_config
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(config=Depends(get_config)):
    """Health check endpoint; reports which search backends have credentials."""
    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version="1.0.0",
        backends={
            "vector_store": bool(config.vector_store_id and config.openai_api_key),
            "tavily": bool(config.tavily_api_key),
        },
    )
