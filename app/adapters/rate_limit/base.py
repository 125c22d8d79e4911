"""Rate limit storage interfaces.

The rate limit service depends on this abstraction (not a concrete store)
so operators can swap the embedded SQLite store for Redis without touching
the admission logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of one admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Requests left in the window after this one, in [0, limit].
        reset: UNIX epoch seconds one full window from the check. This is an
            upper bound, not the moment the client's oldest record expires.
        retry_after: Suggested wait in seconds (0 when allowed, the window
            length when rejected).
    """

    allowed: bool
    limit: int
    remaining: int
    reset: int
    retry_after: int

    def headers(self) -> dict[str, str]:
        """Build the X-RateLimit-* response headers for this decision."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class AbstractRateLimitStorage(ABC):
    """Persistence for per-client request timestamps.

    Implementations own every stored record. Read paths must not raise in
    production variants: on internal failure they log and return a neutral
    value, and the failure shows up through is_healthy()/get_stats().
    """

    storage_type: str = "abstract"

    @abstractmethod
    def count_requests(self, client_key: str, window_start: int) -> int:
        """Count records for client_key with timestamp >= window_start.

        Args:
            client_key: Client identity (normally an IP address).
            window_start: UNIX epoch seconds where the window begins.

        Returns:
            Number of records in the window (0 on storage failure).
        """
        raise NotImplementedError

    @abstractmethod
    def record_request(self, client_key: str, timestamp: int) -> None:
        """Append one admitted request.

        Duplicate timestamps for the same client are valid and must all be
        counted.

        Args:
            client_key: Client identity.
            timestamp: UNIX epoch seconds when the request was admitted.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup_expired(self, window_start: int) -> int:
        """Delete every record older than window_start across all clients.

        Args:
            window_start: Records with timestamp < window_start are removed.

        Returns:
            Number of deleted records (0 on storage failure).
        """
        raise NotImplementedError

    @abstractmethod
    def is_healthy(self) -> bool:
        """Return True when the store can currently serve reads and writes."""
        raise NotImplementedError

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        """Return best-effort diagnostics.

        Always includes storage_type and last_check. On failure the mapping
        carries an ``error`` field instead of raising.
        """
        raise NotImplementedError
