import logging
import pathlib
from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Any
from typing import Literal
from typing import NamedTuple

import jinja2
from openai import AsyncOpenAI
from openai import OpenAIError
from openai import Timeout

from app.core.config import settings
from app.core.exceptions import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when an upstream LLM call fails"""


# --- Reusable Jinja2 Environment ---
PROMPT_DIR = pathlib.Path(__file__).parent / "prompt_templates"
env = jinja2.Environment(loader=jinja2.FileSystemLoader(PROMPT_DIR), autoescape=False)


def render_prompt(template_name: str, **context: Any) -> str:
    """Render one of the prompt templates shipped in ``prompt_templates``."""
    try:
        return env.get_template(template_name).render(**context).strip()
    except jinja2.TemplateNotFound:
        logger.error("Template not found: %s", template_name)
        raise ConfigurationError(f"Prompt template '{template_name}' not found.") from None


# ---------------------------------------------------------------
# Upstream client
# ---------------------------------------------------------------
timeout_config = Timeout(
    settings.LLM_CONNECT_TIMEOUT,
    read=settings.LLM_READ_TIMEOUT,
)


@lru_cache(maxsize=1)
def get_llm_client() -> AsyncOpenAI:
    """Build the shared OpenAI-compatible client (a connection pool, no request state)."""
    if not settings.deepseek_api_key:
        logger.critical("No DEEPSEEK_API_KEY configured; design generation is unavailable.")
        raise ConfigurationError("DEEPSEEK_API_KEY is required to reach the text-generation service.")

    return AsyncOpenAI(
        base_url=settings.llm_base_url,
        api_key=settings.deepseek_api_key,
        timeout=timeout_config,
        max_retries=0,  # Both stages fail fast; callers resubmit
    )


class StreamDelta(NamedTuple):
    """One fragment of a streaming completion."""

    kind: Literal["reasoning", "content"]
    text: str


class UpstreamService:
    """Thin handle over the text-generation API, created per request.

    Holds no per-request state beyond the client reference, so separate
    requests never share anything mutable.
    """

    def __init__(self, client: AsyncOpenAI):
        self._client = client

    async def complete(
        self,
        request_id: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
    ) -> str:
        """Run a blocking chat completion and return its stripped text content."""
        logger.info("[%s] Making LLM API call with model: %s", request_id, model)

        try:
            kwargs: dict[str, Any] = {}
            if max_tokens is not None:
                kwargs["max_tokens"] = max_tokens
            rsp = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **kwargs,
            )

            if not rsp or not getattr(rsp, "choices", None):
                logger.error("[%s] Invalid response structure from LLM API: %s", request_id, str(rsp))
                raise LLMError("Invalid response structure from LLM API")

            message = getattr(rsp.choices[0], "message", None)
            content = getattr(message, "content", None) if message is not None else None
            if not content or not content.strip():
                logger.error("[%s] Empty content in LLM API response", request_id)
                raise LLMError("Empty content in LLM API response")

            logger.debug("[%s] LLM response received, length: %d chars", request_id, len(content))
            return content.strip()
        except LLMError:
            raise
        except OpenAIError as e:
            logger.error("[%s] OpenAI API error: %s", request_id, str(e))
            raise LLMError(f"OpenAI API error: {str(e)}") from e
        except Exception as e:
            logger.exception("[%s] Unexpected error in LLM call", request_id)
            raise LLMError(f"Unexpected error in LLM call: {str(e)}") from e

    async def stream(
        self,
        request_id: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
    ) -> AsyncIterator[StreamDelta]:
        """Yield reasoning and content fragments of a streaming chat completion.

        The upstream response is closed when the iteration finishes, fails, or
        the generator is closed early by its consumer.
        """
        logger.info("[%s] Opening LLM stream with model: %s", request_id, model)

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                stream=True,
            )
        except OpenAIError as e:
            logger.error("[%s] OpenAI API error opening stream: %s", request_id, str(e))
            raise LLMError(f"OpenAI API error: {str(e)}") from e

        async with response:
            try:
                async for chunk in response:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    # reasoning_content is a provider extension, not part of the OpenAI schema
                    reasoning = getattr(delta, "reasoning_content", None)
                    if reasoning:
                        yield StreamDelta("reasoning", reasoning)
                    elif delta.content:
                        yield StreamDelta("content", delta.content)
            except OpenAIError as e:
                logger.error("[%s] LLM stream failed: %s", request_id, str(e))
                raise LLMError(f"OpenAI API error: {str(e)}") from e
            except Exception as e:
                logger.error("[%s] LLM stream interrupted: %s", request_id, str(e), exc_info=True)
                raise LLMError(f"Upstream stream interrupted: {str(e)}") from e

        logger.debug("[%s] LLM stream completed", request_id)
