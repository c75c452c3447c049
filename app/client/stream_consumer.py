"""Client for the design stream endpoint.

``StreamConsumer.run`` posts a ``GenerationRequest``, feeds every received byte
chunk through a fresh ``FrameDecoder`` and dispatches the decoded events to the
caller's ``StreamHandlers``:

- reasoning text is forwarded as received (callers append it);
- code is canonicalized and should replace whatever was shown before;
- an error ends the request; nothing is read after it.
"""

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import settings
from app.generation_logic.frame_codec import FrameDecoder
from app.models.design_models import EventType
from app.models.design_models import GenerationRequest
from app.models.design_models import StreamEvent
from app.services.canonicalizer import canonicalize

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/design/generate"

Handler = Callable[[str], Any]


@dataclass
class StreamHandlers:
    """Optional callbacks invoked while a design stream is consumed."""

    on_reasoning: Handler | None = None
    on_code: Handler | None = None
    on_error: Handler | None = None


async def _call(handler: Handler | None, text: str) -> None:
    if handler is None:
        return
    result = handler(text)
    if inspect.isawaitable(result):
        await result


class StreamConsumer:
    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | None = None,
    ):
        self.base_url = base_url or settings.design_service_url
        self.timeout = timeout or httpx.Timeout(settings.CLIENT_CONNECT_TIMEOUT, read=settings.CLIENT_READ_TIMEOUT)
        self._client = client

    async def run(self, request: GenerationRequest, handlers: StreamHandlers) -> None:
        """Stream one design request and dispatch its events to ``handlers``."""
        if self._client is not None:
            await self._run(self._client, request, handlers)
            return
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
            await self._run(client, request, handlers)

    async def _run(self, client: httpx.AsyncClient, request: GenerationRequest, handlers: StreamHandlers) -> None:
        decoder = FrameDecoder()
        body = request.model_dump(mode="json", by_alias=True)

        try:
            async with client.stream("POST", GENERATE_PATH, json=body) as response:
                if response.is_error:
                    detail = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error("Design service returned %d: %s", response.status_code, detail[:200])
                    await _call(handlers.on_error, detail or "Failed to generate design")
                    return

                try:
                    async for chunk in response.aiter_bytes():
                        for event in decoder.feed(chunk):
                            if await self._dispatch(event, handlers):
                                return
                except httpx.TimeoutException as e:
                    logger.error("Design stream idle for too long: %s", str(e))
                    await _call(handlers.on_error, "Design stream timed out")
                    return
                except httpx.TransportError as e:
                    # A dropped connection is a cancellation, not an application error
                    logger.warning("Design stream closed by transport: %s", str(e))
                    return
        except httpx.RequestError as e:
            logger.error("Could not reach design service at %s: %s", self.base_url, str(e))
            await _call(handlers.on_error, f"Failed to reach design service: {str(e)}")
        finally:
            decoder.close()

    @staticmethod
    async def _dispatch(event: StreamEvent, handlers: StreamHandlers) -> bool:
        """Forward one event; returns True when the stream must stop."""
        if not event.content and event.type is not EventType.ERROR:
            logger.debug("Skipping empty %s event", event.type.value)
            return False
        if event.type is EventType.REASONING:
            await _call(handlers.on_reasoning, event.content)
        elif event.type is EventType.CODE:
            await _call(handlers.on_code, canonicalize(event.content))
        elif event.type is EventType.ERROR:
            logger.info("Design stream reported an error: %s", event.content)
            await _call(handlers.on_error, event.content)
            return True
        return False
