"""Application configuration management."""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    PROJECT_NAME: str = "HablaBot"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str = Field(
        "sqlite:///./hablabot.db",
        description="SQLAlchemy database URL for the item store",
    )

    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost", "http://localhost:3000"],
        description="Allowed CORS origins",
    )

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = Field("gpt-4", description="Default OpenAI chat model")
    OPENAI_API_BASE: Optional[AnyUrl] = Field(
        None, description="Override base URL for OpenAI-compatible endpoints"
    )
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = Field("claude-3-5-sonnet", description="Default Anthropic model")
    ANTHROPIC_API_BASE: Optional[AnyUrl] = Field(
        None, description="Override base URL for Anthropic endpoints"
    )
    PRIMARY_LLM_PROVIDER: str = Field("openai", description="Preferred LLM provider key")
    SECONDARY_LLM_PROVIDER: Optional[str] = Field(
        "anthropic", description="Fallback LLM provider key"
    )
    LLM_REQUEST_TIMEOUT_SECONDS: float = Field(10.0, description="Timeout for LLM HTTP calls")
    LLM_MAX_RETRIES: int = Field(3, ge=1, description="Attempts per provider before giving up")
    LLM_MAX_TOKENS: int = Field(150, description="Completion budget for tutor replies")
    LLM_TEMPERATURE: float = Field(0.7, description="Sampling temperature for tutor replies")

    # Learning preferences
    SESSION_LENGTH_MINUTES: int = Field(15, ge=1, description="Advisory session length")
    WORDS_PER_SESSION: int = Field(5, ge=1, description="Target words selected per session")
    DEFAULT_DIFFICULTY: str = Field("beginner", description="Difficulty tier used when none is given")
    SUCCESS_CONFIDENCE: float = Field(
        0.7, ge=0.0, le=1.0, description="Confidence at which a word use counts as successful"
    )
    MAX_HISTORY_MESSAGES: int = Field(
        20, ge=1, description="Non-system messages forwarded to the dialogue model"
    )

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


settings = get_settings()
