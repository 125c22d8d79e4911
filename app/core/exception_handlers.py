"""Global exception handlers for consistent error responses.

Every error body is a flat JSON object whose ``error`` field is a
human-readable string, which is what the chat widget displays:

    {"error": "...", "code": "...", "request_id": "...", "details": {...}}

Design:
- AppError subclasses → 400 / 429 / 500 / 502 depending on the type
- RateLimitExceededError → 429 with Retry-After and X-RateLimit-* headers
- Unexpected Exception → generic 500 (safety net, no internals leaked)
- Errors raised after admission keep the X-RateLimit-* headers of that admission
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import RateLimitDecision
from app.core.errors import (
    AppError,
    KnowledgeBaseAppError,
    LLMAppError,
    RateLimitExceededError,
    StorageUnavailableError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_code_for(exc: AppError) -> int:
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, RateLimitExceededError):
        return 429
    if isinstance(exc, LLMAppError):
        return 502
    if isinstance(exc, (KnowledgeBaseAppError, StorageUnavailableError)):
        return 500
    return 400


def _rate_limit_headers(request: Request) -> dict[str, str]:
    """Headers of the admission decision taken for this request, if any."""
    decision = getattr(request.state, "rate_limit_decision", None)
    if isinstance(decision, RateLimitDecision):
        return decision.headers()
    return {}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    content = {
        "error": exc.message,
        "code": exc.code,
        "request_id": get_request_id(),
    }
    if exc.details:
        content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=_rate_limit_headers(request),
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Turn a rejected admission into HTTP 429.

    The body always has ``error`` and ``retry_after``; the headers repeat the
    limit info so clients can back off without parsing the body.
    """
    headers = exc.decision.headers() if exc.decision else {}
    headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=429,
        content={
            "error": exc.message,
            "retry_after": exc.retry_after,
            "code": exc.code,
            "request_id": get_request_id(),
        },
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack trace or exception text reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred. Please try again later.",
            "code": "internal_server_error",
            "request_id": get_request_id(),
        },
        headers=_rate_limit_headers(request),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers by walking the exception's MRO, so the
    RateLimitExceededError handler wins over the generic AppError one.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
