"""Sliding-window rate limiting on top of a pluggable storage backend.

Algorithm per check:
1. window_start = now - window_seconds
2. opportunistic cleanup of records older than window_start
3. count the client's records in [window_start, now]
4. admit iff count < max_requests, recording the admission

Every check re-queries storage; nothing is cached between calls. The
count-then-record sequence is not atomic: concurrent requests from one client
may both be admitted and briefly overshoot the limit.

Storage failures fail open: the request is admitted and the failure shows up
in get_health()/get_stats().
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any, Callable

from app.adapters.rate_limit.base import AbstractRateLimitStorage, RateLimitDecision
from app.core.errors import RateLimitExceededError, StorageUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 50
DEFAULT_WINDOW_SECONDS = 900
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


def hash_client_key(client_key: str) -> str:
    """Hash the client key for logging without exposing the raw IP."""
    return hashlib.sha256(client_key.encode()).hexdigest()[:16]


def rate_limit_error(decision: RateLimitDecision) -> RateLimitExceededError:
    """Translate a rejected decision into the caller-visible error."""
    return RateLimitExceededError(
        code="rate_limit_exceeded",
        message=RATE_LIMIT_MESSAGE,
        details={"retry_after": decision.retry_after},
        retry_after=decision.retry_after,
        decision=decision,
    )


class RateLimitService:
    """IP-based sliding-window rate limiter."""

    def __init__(
        self,
        storage: AbstractRateLimitStorage,
        *,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service.

        Args:
            storage: Backend owning the request records.
            max_requests: Admitted requests per window.
            window_seconds: Sliding window length in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If max_requests or window_seconds are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._storage = storage
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock

    @property
    def storage(self) -> AbstractRateLimitStorage:
        return self._storage

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _fail_open(self, client_key: str, now: int, exc: StorageUnavailableError) -> RateLimitDecision:
        logger.warning(
            "rate_limit.fail_open",
            extra={
                "client_key_hash": hash_client_key(client_key),
                "error_code": exc.code,
                "error_message": exc.message,
            },
        )
        return RateLimitDecision(
            allowed=True,
            limit=self._max_requests,
            remaining=self._max_requests - 1,
            reset=now + self._window_seconds,
            retry_after=0,
        )

    def _cleanup(self, window_start: int) -> None:
        try:
            cleaned = self._storage.cleanup_expired(window_start)
        except StorageUnavailableError as exc:
            logger.debug("rate_limit.cleanup_failed", extra={"error_code": exc.code})
            return
        if cleaned > 0:
            logger.debug(
                "rate_limit.cleanup",
                extra={"cleaned_count": cleaned, "window_start": window_start},
            )

    def check(self, client_key: str) -> RateLimitDecision:
        """Decide whether client_key may proceed, recording it if admitted.

        Never raises for storage problems; see module docstring.

        Args:
            client_key: Client identity (normally a validated IP address).

        Returns:
            RateLimitDecision for this request.
        """
        now = int(self._clock())
        window_start = now - self._window_seconds

        self._cleanup(window_start)

        try:
            count = self._storage.count_requests(client_key, window_start)
        except StorageUnavailableError as exc:
            return self._fail_open(client_key, now, exc)

        allowed = count < self._max_requests
        key_hash = hash_client_key(client_key)

        if allowed:
            try:
                self._storage.record_request(client_key, now)
            except StorageUnavailableError as exc:
                return self._fail_open(client_key, now, exc)
            remaining = max(0, self._max_requests - count - 1)
            logger.info(
                "rate_limit.allowed",
                extra={
                    "client_key_hash": key_hash,
                    "limit": self._max_requests,
                    "remaining": remaining,
                    "window_s": self._window_seconds,
                },
            )
        else:
            remaining = max(0, self._max_requests - count)
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "client_key_hash": key_hash,
                    "current_requests": count,
                    "limit": self._max_requests,
                    "window_s": self._window_seconds,
                },
            )

        return RateLimitDecision(
            allowed=allowed,
            limit=self._max_requests,
            remaining=remaining,
            reset=now + self._window_seconds,
            retry_after=0 if allowed else self._window_seconds,
        )

    def enforce(self, client_key: str) -> None:
        """Run check() and raise when the client is over quota.

        Raises:
            RateLimitExceededError: Carrying retry_after and the decision.
        """
        decision = self.check(client_key)
        if not decision.allowed:
            raise rate_limit_error(decision)

    def get_health(self) -> bool:
        return self._storage.is_healthy()

    def get_stats(self) -> dict[str, Any]:
        return self._storage.get_stats()
