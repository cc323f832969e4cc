"""Question-answering endpoints backed by the retrieval orchestrator."""

import asyncio
import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from server.dependencies import get_api_key, get_orchestrator
from server.schemas.requests import AskRequest
from server.schemas.responses import AskResponseDTO
from server.utils import build_backend_config
from orchestrator.progress import QueueProgressSink
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Ask"])


def _call_kwargs(request: AskRequest, orchestrator) -> dict:
    return {
        "allowed_domains": request.allowed_domains,
        "backend_config": build_backend_config(request, orchestrator.backend_config),
        "hints": request.hints.to_hints() if request.hints else None,
    }


@router.post("/ask", response_model=AskResponseDTO)
async def ask(
    request: AskRequest,
    http_request: Request,
    api_key: str = Depends(get_api_key),
    orchestrator=Depends(get_orchestrator),
):
    """Answer a question with citations. Orchestration failures never surface as 5xx."""
    request_id = getattr(http_request.state, "request_id", "unknown")
    logger.info(
        "Ask request received",
        extra={"extra_fields": {"request_id": request_id, "query_chars": len(request.query)}},
    )

    outcome = await orchestrator.orchestrate(request.query, **_call_kwargs(request, orchestrator))
    return AskResponseDTO.from_outcome(outcome)


async def _ndjson_stream(orchestrator, request: AskRequest):
    """Yield progress events as they happen, then the final outcome, one JSON object per line."""
    sink = QueueProgressSink()
    task = asyncio.create_task(
        orchestrator.orchestrate(request.query, progress=sink, **_call_kwargs(request, orchestrator))
    )
    next_event = None

    try:
        while True:
            next_event = asyncio.ensure_future(sink.queue.get())
            done, _ = await asyncio.wait({next_event, task}, return_when=asyncio.FIRST_COMPLETED)
            if next_event in done:
                yield json.dumps(next_event.result().to_dict()) + "\n"
                continue
            next_event.cancel()
            break

        while not sink.queue.empty():
            yield json.dumps(sink.queue.get_nowait().to_dict()) + "\n"

        result = AskResponseDTO.from_outcome(task.result()).model_dump(by_alias=True)
        yield json.dumps({"type": "result", **result}) + "\n"
    finally:
        # Client went away: abandon the in-flight orchestration
        if next_event is not None and not next_event.done():
            next_event.cancel()
        if not task.done():
            task.cancel()


@router.post("/ask/stream")
async def ask_stream(
    request: AskRequest,
    api_key: str = Depends(get_api_key),
    orchestrator=Depends(get_orchestrator),
):
    """Stream progress events (NDJSON) followed by a final ``{"type": "result"}`` line."""
    return StreamingResponse(_ndjson_stream(orchestrator, request), media_type="application/x-ndjson")
