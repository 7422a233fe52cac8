"""
Configuration management for ADVDESK.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    # ==========================================================================
    # LLM API Keys
    # ==========================================================================
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openai_api_key: str = Field(default="", description="OpenAI API key for GPT-4o")
    gemini_api_key: str = Field(default="", description="Google API key for Gemini")

    # ==========================================================================
    # Text generation (long-form prose, reports, chat)
    # ==========================================================================
    primary_llm_model: str = "claude-sonnet-4-20250514"
    primary_llm_provider: Literal["anthropic", "openai"] = "anthropic"
    fallback_llm_model: str = "gpt-4o"
    fallback_llm_provider: Literal["anthropic", "openai"] = "openai"
    chat_llm_model: str = "claude-haiku-4-5-20251001"
    llm_temperature: float = 0.2
    petition_max_tokens: int = 8192
    judge_report_max_tokens: int = 6144
    chat_report_max_tokens: int = 4096
    chat_max_tokens: int = 2048

    # ==========================================================================
    # Multimodal analysis (structured JSON, transcription)
    # ==========================================================================
    multimodal_model: str = "gemini-2.0-flash"
    multimodal_temperature: float = 0.1

    # ==========================================================================
    # Stage timeouts (seconds)
    # ==========================================================================
    analysis_timeout: float = 120.0
    structuring_timeout: float = 120.0
    generation_timeout: float = 300.0
    judge_report_timeout: float = 240.0
    chat_turn_timeout: float = 60.0
    chat_report_timeout: float = 120.0

    # ==========================================================================
    # Rate limits (calls per principal per hour)
    # ==========================================================================
    rate_limit_petition_analysis: int = 20
    rate_limit_petition_generation: int = 10
    rate_limit_judge_analysis: int = 10
    rate_limit_chat_message: int = 100

    # ==========================================================================
    # Storage
    # ==========================================================================
    storage_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "advdesk"

    blob_root: Path = Path("./blobs")
    blob_base_url: str = "http://localhost:8000/api/v1/blobs"
    blob_signing_secret: str = "advdesk-dev-signing-secret"
    signed_url_ttl: int = 7 * 24 * 3600

    @field_validator("blob_root", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(v) if isinstance(v, str) else v

    # ==========================================================================
    # Authentication
    # ==========================================================================
    jwt_secret: str = "advdesk-dev-jwt-secret"
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # ==========================================================================
    # Pipeline Configuration
    # ==========================================================================
    knowledge_context_limit: int = 5
    chat_knowledge_docs: int = 3
    chat_history_limit: int = 20
    default_office_name: str = "ADVDESK"

    @property
    def rate_limits(self) -> dict[str, int]:
        """Per-action hourly call budgets."""
        return {
            "petition_analysis": self.rate_limit_petition_analysis,
            "petition_generation": self.rate_limit_petition_generation,
            "judge_analysis": self.rate_limit_judge_analysis,
            "chat_message": self.rate_limit_chat_message,
        }

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.blob_root.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.ensure_directories()
    return settings
