"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from app.adapters.rate_limit.base import RateLimitDecision


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    errors: list[str]
    max_length: int
    actual_length: int
    provider: str
    path: str
    retry_after: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class LLMAppError(AppError):
    """Raised when the generative AI provider fails or is unavailable."""


class KnowledgeBaseAppError(AppError):
    """Raised when the knowledge base cannot be loaded."""


class StorageUnavailableError(AppError):
    """Raised by a rate limit storage that cannot be reached or queried.

    Never crosses the limiter boundary: the rate limit service catches it and
    fails open.
    """


@dataclass
class RateLimitExceededError(AppError):
    """Raised when a client is over its request quota.

    Attributes:
        retry_after: Seconds the client should wait before retrying.
        decision: The rejected decision, used to build rate limit headers.
    """

    retry_after: int = 0
    decision: RateLimitDecision | None = None
