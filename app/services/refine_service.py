from __future__ import annotations

import logging

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.core.exceptions import RefineError
from app.models.design_models import GenerationRequest
from app.models.design_models import StylePreferences
from app.services.llm import LLMError
from app.services.llm import UpstreamService
from app.services.llm import render_prompt

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = "design_system_prompt.jinja2"
REFINE_PROMPT_TEMPLATE = "refine_prompt.jinja2"

_TOGGLE_LABELS = {
    "modern": "modern",
    "minimal": "minimal",
    "dark_mode": "dark mode",
}

_CHOICE_LABELS = {
    "border_radius": "border radius",
    "color_scheme": "color scheme",
    "spacing": "spacing",
    "typography": "typography",
    "animations": "animations",
    "icon_style": "icon style",
    "button_style": "button style",
    "layout": "layout",
}


def describe_style_preferences(styles: StylePreferences) -> list[str]:
    """Flatten preferences into descriptive list items.

    Enabled toggles appear by name, every choice as ``label: value``. Custom
    colours are only listed when the colour scheme is ``custom``.
    """
    items = [label for field, label in _TOGGLE_LABELS.items() if getattr(styles, field)]
    for field, label in _CHOICE_LABELS.items():
        items.append(f"{label}: {getattr(styles, field)}")

    if styles.color_scheme == "custom":
        if styles.primary_color:
            items.append(f"primary color: {styles.primary_color}")
        if styles.secondary_color:
            items.append(f"secondary color: {styles.secondary_color}")
    return items


def build_refine_prompt(request: GenerationRequest) -> str:
    return render_prompt(
        REFINE_PROMPT_TEMPLATE,
        prompt=request.prompt.strip(),
        negative_prompt=request.negative_prompt.strip(),
        style_preferences=describe_style_preferences(request.style_preferences),
    )


def build_system_prompt() -> str:
    return render_prompt(SYSTEM_PROMPT_TEMPLATE)


class RefineService:
    """Turns a raw design request into the brief used by the generate stage."""

    def __init__(self, upstream: UpstreamService):
        self.upstream = upstream

    async def refine(self, request_id: str, request: GenerationRequest) -> str:
        logger.info("[%s] Refining design prompt (%d chars)", request_id, len(request.prompt))
        try:
            brief = await self.upstream.complete(
                request_id,
                model=settings.refine_model_id,
                system_prompt=build_system_prompt(),
                user_prompt=build_refine_prompt(request),
                max_tokens=settings.refine_max_tokens,
            )
        except ConfigurationError:
            raise
        except LLMError as e:
            logger.error("[%s] Prompt refinement failed: %s", request_id, str(e))
            raise RefineError(f"Failed to refine prompt: {str(e)}") from e

        logger.info("[%s] Refined brief ready, length: %d chars", request_id, len(brief))
        return brief
