"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).

Every setting has a default so the parser and router can run without any environment at all; only
the chat adapter entrypoint requires a bot token.
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: str | None = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    projects_json_path: str | None = Field(default=None, alias="PROJECTS_JSON_PATH")

    context_ttl_seconds: float = Field(default=300.0, alias="CONTEXT_TTL_SECONDS")
    max_query_length: int = Field(default=10_000, alias="MAX_QUERY_LENGTH")
    max_available_values: int = Field(default=1_000, alias="MAX_AVAILABLE_VALUES")
    max_history_messages: int = Field(default=100, alias="MAX_HISTORY_MESSAGES")
    typo_tolerance_enabled: bool = Field(default=False, alias="TYPO_TOLERANCE_ENABLED")

    llm_enabled: bool = Field(default=False, alias="LLM_ENABLED")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_model: str = Field(default="llama-3.1-8b-instant", alias="LLM_MODEL")
    llm_api_base: str = Field(default="https://api.groq.com/openai/v1", alias="LLM_API_BASE")
    llm_timeout_s: float = Field(default=30.0, alias="LLM_TIMEOUT_S")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("context_ttl_seconds")
    @classmethod
    def validate_context_ttl(cls, value: float) -> float:
        """Reject a non-positive context lifetime (it would void every context immediately)."""

        if value <= 0:
            raise ValueError("CONTEXT_TTL_SECONDS must be > 0")
        return value

    @field_validator("max_query_length", "max_available_values", "max_history_messages")
    @classmethod
    def validate_positive_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("input limits must be positive integers")
        return value

    @model_validator(mode="after")
    def validate_llm_config(self) -> Settings:
        """Validate the optional conversational LLM configuration.

        If the LLM fallback is enabled, an API key must be provided.
        """

        if self.llm_enabled and not self.llm_api_key:
            raise ValueError("LLM_API_KEY is required when LLM_ENABLED=true")
        return self


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
