import logging
from uuid import uuid4

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi.responses import StreamingResponse

from app.generation_logic.stream_orchestrator import stream_design_generation
from app.models.design_models import GenerationRequest
from app.services.llm import UpstreamService
from app.services.llm import get_llm_client

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_upstream_service() -> UpstreamService:
    """Per-request handle on the text-generation service."""
    return UpstreamService(get_llm_client())


@router.post("/design/generate")
async def generate_design(
    request: Request,
    payload: GenerationRequest,
    upstream: UpstreamService = Depends(get_upstream_service),
) -> StreamingResponse:
    """
    Generates an HTML design from a natural-language request.

    The response is a server-sent event stream. Each frame is a JSON object
    ``{"type": ..., "content": ...}``:
    - `reasoning`: a fragment of the model's reasoning, in arrival order.
    - `code`: the complete, canonicalized HTML document (sent once).
    - `error`: a terminal failure message.
    """
    request_id = str(uuid4())
    logger.info(
        "[%s] /design/generate called. Prompt length: %d, negative prompt: %s",
        request_id,
        len(payload.prompt),
        bool(payload.negative_prompt),
    )

    return StreamingResponse(
        stream_design_generation(
            payload,
            upstream,
            is_disconnected=request.is_disconnected,
            request_id=request_id,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
