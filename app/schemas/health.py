from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class RateLimitStorageCheck(BaseModel):
    status: Literal["ok", "error"]
    healthy: bool
    stats: dict[str, Any] = Field(default_factory=dict)


class HealthChecks(BaseModel):
    rate_limit_storage: RateLimitStorageCheck
    knowledge_base: dict[str, Any]
    ai_provider: dict[str, Any]


class HealthResponse(BaseModel):
    """Detailed health report returned by GET /health."""

    status: Literal["ok", "degraded"] = Field(
        ..., description="'degraded' when the rate limit storage is unhealthy (limiter fails open)"
    )
    service: str
    version: str
    environment: str
    timestamp: str
    uptime_seconds: int
    checks: HealthChecks
