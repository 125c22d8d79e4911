from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from app.core.config import settings
from app.schemas.health import HealthChecks, HealthResponse, RateLimitStorageCheck

router = APIRouter(tags=["Health"])


def _rate_limit_storage_check(request: Request) -> RateLimitStorageCheck:
    limiter = request.app.state.rate_limiter
    healthy = limiter.get_health()
    return RateLimitStorageCheck(
        status="ok" if healthy else "error",
        healthy=healthy,
        stats=limiter.get_stats(),
    )


def _ai_provider_check(request: Request) -> dict:
    llm = request.app.state.llm_client
    demo = llm.provider_name == "demo"
    return {
        "status": "demo" if demo else ("ok" if llm.is_available() else "error"),
        "provider": llm.provider_name,
        "mode": "demo" if demo else "production",
    }


@router.get("/health", response_model=HealthResponse)
@router.get("/api/v1/health", response_model=HealthResponse)
def health_check(request: Request, plain: str | None = None):
    """Health check endpoint.

    ``?plain`` returns a bare ``OK`` for load balancers. Otherwise reports the
    state of the rate limit storage, the knowledge base and the AI provider.
    A broken rate limit storage yields ``degraded`` (requests are still
    served, the limiter fails open) rather than an error status code.
    """

    if plain is not None:
        return PlainTextResponse("OK")

    storage_check = _rate_limit_storage_check(request)
    return HealthResponse(
        status="ok" if storage_check.healthy else "degraded",
        service=settings.app.name,
        version=settings.app.version,
        environment=settings.app.environment,
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=int(time.monotonic() - request.app.state.started_at),
        checks=HealthChecks(
            rate_limit_storage=storage_check,
            knowledge_base=request.app.state.knowledge_service.describe(),
            ai_provider=_ai_provider_check(request),
        ),
    )
