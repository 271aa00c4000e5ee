"""
app/config.py — Central configuration loaded from environment variables.
All modules import settings from here; never read os.environ directly elsewhere.
"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Runtime ───────────────────────────────────────────────────────────────
    app_env: str = Field(
        default="production",
        description="'development' turns on per-query timing logs",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Database ──────────────────────────────────────────────────────────────
    database_url: str = Field(..., description="PostgreSQL connection URI")
    db_pool_size: int = Field(default=10, gt=0, description="Persistent pool connections")
    db_max_overflow: int = Field(
        default=10,
        ge=0,
        description="Extra connections above pool_size (pool_size + overflow = 20 max)",
    )
    db_pool_recycle: int = Field(
        default=30,
        gt=0,
        description="Seconds before an idle pooled connection is recycled",
    )
    db_connect_timeout: int = Field(default=2, gt=0, description="Connect timeout in seconds")
    db_sslmode: str = Field(default="require", description="libpq sslmode for PostgreSQL URLs")

    # ── LLM ──────────────────────────────────────────────────────────────────
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI-compatible endpoint; template fallbacks when unset",
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Chat model identifier")
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible gateways such as OpenRouter",
    )

    # ── Pipeline client ───────────────────────────────────────────────────────
    data_source: Literal["memory", "http"] = Field(
        default="memory",
        description="Backend for pipeline boards: in-memory fixtures or the HTTP API",
    )
    api_base_url: str = Field(
        default="http://localhost:8000/api",
        description="Base URL used by the HTTP data source",
    )
    http_timeout: float = Field(default=10.0, gt=0, description="HTTP client timeout in seconds")

    # ── Matching ──────────────────────────────────────────────────────────────
    min_match_score: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Default minimum match score (0–100) returned by job matching",
    )

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


# Singleton — import this everywhere
settings = Settings()
