from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nanobanana.errors import ConfigurationError

DEFAULT_REFERER = "https://github.com/AevenAI/mcps/tree/main/nanobanana"


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
        protected_namespaces=(),
        populate_by_name=True,
    )

    # Keys
    model_api_key: str | None = None

    # Provider endpoint
    model_base_url: str = "https://openrouter.ai/api/v1"
    model_id: str = "google/gemini-2.5-flash-image"
    model_generate_path: str = "/responses"
    model_referer: str = DEFAULT_REFERER
    model_title: str = "Nano Banana MCP Server"
    # Seconds; 0 disables the timeout entirely.
    model_request_timeout: float = 120.0

    # Files
    output_dir_name: str = "nanobanana-output"

    log_level: str = Field(
        default="silent",
        validation_alias=AliasChoices("NANOBANANA_LOG_LEVEL", "LOG_LEVEL"),
    )

    # HTTP JSON-RPC transport
    http_host: str = "127.0.0.1"
    http_port: int = 8765

    @field_validator("model_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("model_generate_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip() or "/responses"
        return value if value.startswith("/") else f"/{value}"

    @property
    def request_timeout(self) -> float | None:
        return self.model_request_timeout if self.model_request_timeout > 0 else None


def load_settings(**overrides) -> Settings:
    return Settings(**overrides)


def require_api_key(settings: Settings) -> str:
    """Return the bearer token or fail the way startup expects."""
    if settings.model_api_key and settings.model_api_key.strip():
        return settings.model_api_key.strip()
    raise ConfigurationError(
        "ERROR: No model API key found. Please set the MODEL_API_KEY environment variable.\n"
        "For provider setup details, see your model host documentation "
        "(OpenRouter docs: https://openrouter.ai/docs#authenticate)."
    )
