"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _parse_csv(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        items = [str(v).strip() for v in raw]
    else:
        items = [part.strip() for part in str(raw).split(",")]
    return [item for item in items if item]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    name: str = Field("Chatbot Demo API", description="Service name reported by /health")
    version: str = Field("2.0.0", description="Service version reported by /health")
    environment: str = Field(
        APP_ENV,
        description="Deployment environment (development, testing, staging, production)",
    )
    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list of allowed CORS origins",
    )
    max_message_chars: int = Field(
        1000,
        description="Maximum chat message length in characters",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_csv(v)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


class LLMSettings(BaseSettings):
    """Generative AI provider configuration.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: Literal["demo", "openai", "gemini"] = Field(
        "demo",
        description="AI provider name (demo, openai or gemini)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Model name for the openai provider",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint for OpenAI-compatible providers",
    )
    gemini_api_key: str | None = Field(
        None,
        validation_alias=AliasChoices("LLM_GEMINI_API_KEY", "GEMINI_API_KEY"),
        description="Gemini API key; falls back to api_key",
    )
    gemini_model: str = Field(
        "gemini-1.5-flash",
        description="Model name used when provider is gemini",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(0.7, description="Sampling temperature")
    max_tokens: int = Field(2048, description="Maximum completion tokens", ge=1)

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Sliding-window rate limiter configuration."""

    enabled: bool = Field(
        True,
        description="Enable per-IP rate limiting on chat endpoints",
    )
    max_requests: int = Field(
        50,
        description="Maximum number of admitted requests per window (per client IP)",
        ge=1,
    )
    time_window_seconds: int = Field(
        900,
        description="Sliding window length in seconds",
        ge=1,
    )
    backend: Literal["sqlite", "redis", "memory"] = Field(
        "sqlite",
        description="Storage backend for request timestamps",
    )
    database_path: str = Field(
        str(PROJECT_ROOT / "data" / "rate_limit.db"),
        description="SQLite database file (':memory:' for a private in-process database)",
    )
    storage_timeout_seconds: float = Field(
        5.0,
        description="Upper bound for a single storage call (SQLite busy timeout, Redis socket timeout)",
        gt=0,
    )
    key_prefix: str = Field(
        "rate_limit:",
        description="Key prefix for the Redis backend",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Connection parameters for the Redis rate limit backend."""

    host: str = Field("localhost", description="Redis host")
    port: int = Field(6379, description="Redis port")
    password: str | None = Field(None, description="Redis password")
    database: int = Field(0, description="Redis logical database index", ge=0)

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class KnowledgeSettings(BaseSettings):
    """Knowledge base loading and caching."""

    path: str = Field(
        str(PROJECT_ROOT / "knowledge"),
        description="Directory holding the *.md knowledge base files",
    )
    cache_enabled: bool = Field(True, description="Cache the loaded knowledge base")
    cache_ttl_seconds: int = Field(3600, description="Knowledge base cache TTL", ge=1)

    model_config = SettingsConfigDict(
        env_prefix="KNOWLEDGE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate log file at this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field("X-Request-ID", description="Header carrying the request id")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    knowledge: KnowledgeSettings = Field(default_factory=KnowledgeSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
