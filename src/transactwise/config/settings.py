"""Configuration settings for TransactWise."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reasoning service
    llm_provider: Literal["gemini", "claude", "openai"] = Field(
        default="gemini", validation_alias="LLM_PROVIDER"
    )
    google_api_key: SecretStr | None = Field(default=None, validation_alias="GOOGLE_API_KEY")
    anthropic_api_key: SecretStr | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    openai_api_key: SecretStr | None = Field(default=None, validation_alias="OPENAI_API_KEY")

    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
    claude_model: str = Field(default="claude-haiku-4-5", validation_alias="CLAUDE_MODEL")
    gpt_model: str = Field(default="gpt-4.1-mini", validation_alias="GPT_MODEL")

    # Matching wants repeatable answers, keep temperature low
    llm_max_tokens: int = Field(default=8192, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.1, validation_alias="LLM_TEMPERATURE")

    # Document store (Firestore REST)
    firestore_project_id: str | None = Field(
        default=None, validation_alias="FIRESTORE_PROJECT_ID"
    )
    firestore_database: str = Field(default="(default)", validation_alias="FIRESTORE_DATABASE")
    firestore_token: SecretStr | None = Field(default=None, validation_alias="FIRESTORE_TOKEN")
    firestore_timeout: float = Field(default=30.0, validation_alias="FIRESTORE_TIMEOUT")

    # Firestore rejects commits with more than 500 writes
    write_batch_size: int = Field(default=499, ge=1, le=500, validation_alias="WRITE_BATCH_SIZE")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
