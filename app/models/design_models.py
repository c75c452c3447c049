from enum import Enum
from typing import Literal

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic.alias_generators import to_camel

BorderRadius = Literal["none", "small", "medium", "large"]
ColorScheme = Literal["default", "neutral", "blue", "green", "purple", "black", "white", "custom"]
Spacing = Literal["compact", "comfortable", "spacious"]
Typography = Literal["modern", "classic", "minimal"]
Animations = Literal["none", "subtle", "smooth"]
IconStyle = Literal["outline", "solid", "duotone"]
ButtonStyle = Literal["rounded", "pill", "square"]
Layout = Literal["centered", "wide", "boxed"]


class StylePreferences(BaseModel):
    """Design toggles and choices picked by the user.

    Every field has a default, so an empty object is a complete preference set.
    Wire names are camelCase (``darkMode``, ``borderRadius`` ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    modern: bool = True
    minimal: bool = True
    dark_mode: bool = False
    border_radius: BorderRadius = "medium"
    color_scheme: ColorScheme = "default"
    primary_color: str | None = None
    secondary_color: str | None = None
    spacing: Spacing = "comfortable"
    typography: Typography = "modern"
    animations: Animations = "smooth"
    icon_style: IconStyle = "outline"
    button_style: ButtonStyle = "rounded"
    layout: Layout = "centered"


class GenerationRequest(BaseModel):
    """A single design request submitted by the UI."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prompt: str = Field(..., min_length=1, description="Natural-language description of the design.")
    negative_prompt: str = Field(
        default="",
        validation_alias=AliasChoices("negativePrompt", "negative_prompt"),
        serialization_alias="negativePrompt",
    )
    style_preferences: StylePreferences = Field(
        default_factory=StylePreferences,
        validation_alias=AliasChoices("stylePreferences", "styles", "style_preferences"),
        serialization_alias="stylePreferences",
    )

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v

    @field_validator("negative_prompt", mode="before")
    @classmethod
    def negative_prompt_default(cls, v: str | None) -> str:
        return v or ""


class EventType(str, Enum):
    REASONING = "reasoning"
    CODE = "code"
    ERROR = "error"


class StreamEvent(BaseModel):
    """One typed event of the outgoing design stream."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    content: str

    @classmethod
    def reasoning(cls, content: str) -> "StreamEvent":
        return cls(type=EventType.REASONING, content=content)

    @classmethod
    def code(cls, content: str) -> "StreamEvent":
        return cls(type=EventType.CODE, content=content)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(type=EventType.ERROR, content=message)
