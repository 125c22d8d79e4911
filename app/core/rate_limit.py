"""Rate limiting dependency for FastAPI routes.

This module wires the rate limit service into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Explicit ownership: the service lives on ``app.state`` and is built by the
  app factory, so tests can inject isolated instances.
- Safe defaults: storage problems never turn into 5xx responses.

The dependency is a plain ``def`` so FastAPI runs it in the threadpool;
storage calls block on file or socket I/O and must not stall the event loop.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response

from app.adapters.rate_limit.factory import create_rate_limit_storage
from app.core.client_ip import get_client_ip
from app.core.config import Settings, settings
from app.services.rate_limit_service import RateLimitService, rate_limit_error

logger = logging.getLogger(__name__)


def build_rate_limiter(cfg: Settings | None = None) -> RateLimitService:
    """Build the rate limit service from configuration.

    Args:
        cfg: Settings to read; defaults to the global settings.

    Returns:
        RateLimitService: Service backed by the configured storage.
    """
    cfg = cfg or settings
    storage = create_rate_limit_storage(cfg)
    logger.info(
        "rate_limit.configured",
        extra={
            "backend": storage.storage_type,
            "limit": cfg.rate_limit.max_requests,
            "window_s": cfg.rate_limit.time_window_seconds,
        },
    )
    return RateLimitService(
        storage,
        max_requests=cfg.rate_limit.max_requests,
        window_seconds=cfg.rate_limit.time_window_seconds,
    )


def get_rate_limiter(request: Request) -> RateLimitService:
    """Return the rate limit service owned by the running app."""
    return request.app.state.rate_limiter


def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the per-IP rate limit.

    Attaches X-RateLimit-* headers to the outgoing response when the request
    is admitted, and keeps the decision on ``request.state`` so a later
    error response carries the same headers.

    Args:
        request: FastAPI request.
        response: Response whose headers receive the rate limit info.

    Raises:
        RateLimitExceededError: When the client is over quota; the exception
            handler turns it into HTTP 429.
    """
    if not settings.rate_limit.enabled:
        return

    limiter = get_rate_limiter(request)
    decision = limiter.check(get_client_ip(request))

    request.state.rate_limit_decision = decision

    if not decision.allowed:
        raise rate_limit_error(decision)

    response.headers.update(decision.headers())
