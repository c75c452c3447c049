"""Application configuration settings.

This module defines the application-wide settings using Pydantic's BaseSettings.
Values are loaded from environment variables and an optional .env file, with
type validation and defaults for both the streaming server and the client.
"""

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

# Default list of CORS allowed origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:5000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://0.0.0.0:8000",
]


class Settings(BaseSettings):
    """Manages application settings, loading them from environment variables or an .env file.

    Attributes:
        deepseek_api_key: API key for the upstream text-generation service.
        llm_base_url: Base URL of the OpenAI-compatible upstream API.
        refine_model_id: Chat model used by the non-streaming refine stage.
        generate_model_id: Reasoning model used by the streaming generate stage.
        refine_max_tokens: Token cap for the refined brief.
        cors_allowed_origins: List of allowed origins for CORS.
        design_service_url: Base URL the stream consumer connects to.
        LLM_CONNECT_TIMEOUT: Upstream client connect timeout in seconds.
        LLM_READ_TIMEOUT: Upstream read timeout in seconds (max gap between deltas).
        CLIENT_CONNECT_TIMEOUT: Stream consumer connect timeout in seconds.
        CLIENT_READ_TIMEOUT: Stream consumer idle timeout between chunks in seconds.
        DECODER_MAX_PARTIAL_CHARS: Cap on the decoder's partial-payload accumulator.
    """

    deepseek_api_key: str | None = Field(default=None)
    llm_base_url: str = Field(default="https://api.deepseek.com/v1")
    refine_model_id: str = Field(default="deepseek-chat")
    generate_model_id: str = Field(default="deepseek-reasoner")
    refine_max_tokens: int = Field(default=2000)

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
    )

    design_service_url: str = Field(default="http://localhost:8000")

    LLM_CONNECT_TIMEOUT: float = Field(default=10.0, description="Upstream client connect timeout in seconds.")
    LLM_READ_TIMEOUT: float = Field(default=180.0, description="Upstream client read timeout in seconds.")
    CLIENT_CONNECT_TIMEOUT: float = Field(default=10.0, description="Stream consumer connect timeout in seconds.")
    CLIENT_READ_TIMEOUT: float = Field(default=300.0, description="Stream consumer idle timeout in seconds.")
    DECODER_MAX_PARTIAL_CHARS: int = Field(default=1_000_000, description="Max size of a partial frame payload.")

    model_config = {
        "env_file": ".env",
        "protected_namespaces": ("settings_",),
        "env_prefix": "",  # No prefix for environment variables
        "extra": "ignore",
    }

    @field_validator("cors_allowed_origins", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Assembles the list of CORS allowed origins.

        If 'v' is a string, it splits it by commas. If 'v' is already a list,
        it's used directly. Otherwise, returns the default list of origins.
        """
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return list(DEFAULT_CORS_ORIGINS)


settings = Settings()
