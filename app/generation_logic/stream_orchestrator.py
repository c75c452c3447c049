import logging
from collections.abc import AsyncIterator
from collections.abc import Awaitable
from collections.abc import Callable
from contextlib import aclosing
from uuid import uuid4

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.core.exceptions import GenerateError
from app.core.exceptions import RefineError
from app.generation_logic.frame_codec import encode_event
from app.models.design_models import GenerationRequest
from app.models.design_models import StreamEvent
from app.services.canonicalizer import canonicalize
from app.services.llm import LLMError
from app.services.llm import UpstreamService
from app.services.refine_service import RefineService
from app.services.refine_service import build_system_prompt

__all__ = [
    "DisconnectCheck",
    "stream_design_generation",
]

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


async def _never_disconnected() -> bool:
    return False


async def stream_design_generation(
    request: GenerationRequest,
    upstream: UpstreamService,
    is_disconnected: DisconnectCheck | None = None,
    request_id: str | None = None,
) -> AsyncIterator[bytes]:
    """Run the refine and generate stages, yielding encoded SSE frames.

    Reasoning deltas are forwarded one frame each as they arrive. Content
    deltas are buffered and sent once, canonicalized, when the upstream stream
    ends. Any failure ends the stream with exactly one error frame.

    The caller awaits each frame before asking for the next one, so a slow
    client holds back the upstream read. ``is_disconnected`` is polled before
    every frame and every buffered content delta; once it reports a closed client the upstream stream is closed
    and nothing more is produced.
    """
    request_id = request_id or str(uuid4())
    client_gone = is_disconnected or _never_disconnected
    logger.info("[%s] Initiating streaming design generation", request_id)

    try:
        # ------------------------------------------------------------------
        # 1. Refine stage
        # ------------------------------------------------------------------
        brief = await RefineService(upstream).refine(request_id, request)
        if await client_gone():
            logger.info("[%s] Client disconnected after refine stage; skipping generation", request_id)
            return

        # ------------------------------------------------------------------
        # 2. Generate stage
        # ------------------------------------------------------------------
        code_parts: list[str] = []
        reasoning_frames = 0
        deltas = upstream.stream(
            request_id,
            model=settings.generate_model_id,
            system_prompt=build_system_prompt(),
            user_prompt=brief,
        )
        async with aclosing(deltas):
            try:
                async for delta in deltas:
                    if delta.kind == "content":
                        if await client_gone():
                            logger.info("[%s] Client disconnected during document stream; closing upstream", request_id)
                            return
                        code_parts.append(delta.text)
                        continue
                    frame = encode_event(StreamEvent.reasoning(delta.text))
                    if not frame:
                        continue
                    if await client_gone():
                        logger.info("[%s] Client disconnected mid-stream; closing upstream", request_id)
                        return
                    reasoning_frames += 1
                    yield frame
            except LLMError as e:
                raise GenerateError(f"Design generation failed: {str(e)}") from e

        code = canonicalize("".join(code_parts))
        logger.info(
            "[%s] Generation stream finished: %d reasoning frames, %d code chars",
            request_id,
            reasoning_frames,
            len(code),
        )
        if not code:
            raise GenerateError("Design generation returned no document.")

        if await client_gone():
            logger.info("[%s] Client disconnected before final document", request_id)
            return
        yield encode_event(StreamEvent.code(code))

    # ----------------------------------------------------------------------
    # Error handling
    # ----------------------------------------------------------------------
    except RefineError as re:
        logger.error("[%s] RefineError during stream: %s", request_id, str(re))
        yield encode_event(StreamEvent.error(str(re)))
    except GenerateError as ge:
        logger.error("[%s] GenerateError during stream: %s", request_id, str(ge))
        yield encode_event(StreamEvent.error(str(ge)))
    except ConfigurationError as ce:
        logger.error("[%s] ConfigurationError during stream: %s", request_id, str(ce))
        yield encode_event(StreamEvent.error(f"Configuration error: {str(ce)}"))
    except Exception as e:  # General catch-all MUST be last
        logger.exception("[%s] Unexpected error during design generation stream", request_id)
        yield encode_event(StreamEvent.error(f"An unexpected server error occurred: {type(e).__name__}"))
    finally:
        logger.info("[%s] Stream generation logic finished.", request_id)
