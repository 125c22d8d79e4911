"""In-memory rate limit storage.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- No failure modes, which makes rate limit behavior deterministic in tests.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

from app.adapters.rate_limit.base import AbstractRateLimitStorage


class InMemoryRateLimitStorage(AbstractRateLimitStorage):
    """Keeps request timestamps in a process-local dict keyed by client."""

    storage_type = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source used for the last_check stats field.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._timestamps_by_key: dict[str, list[int]] = {}

    def count_requests(self, client_key: str, window_start: int) -> int:
        with self._lock:
            timestamps = self._timestamps_by_key.get(client_key, [])
            return sum(1 for ts in timestamps if ts >= window_start)

    def record_request(self, client_key: str, timestamp: int) -> None:
        with self._lock:
            self._timestamps_by_key.setdefault(client_key, []).append(int(timestamp))

    def cleanup_expired(self, window_start: int) -> int:
        deleted = 0
        with self._lock:
            for key in list(self._timestamps_by_key):
                timestamps = self._timestamps_by_key[key]
                kept = [ts for ts in timestamps if ts >= window_start]
                deleted += len(timestamps) - len(kept)
                if kept:
                    self._timestamps_by_key[key] = kept
                else:
                    del self._timestamps_by_key[key]
        return deleted

    def is_healthy(self) -> bool:
        return True

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = sum(len(ts) for ts in self._timestamps_by_key.values())
            unique = len(self._timestamps_by_key)
        return {
            "storage_type": self.storage_type,
            "total_records": total,
            "unique_clients": unique,
            "last_check": int(self._clock()),
        }

    def clear(self) -> None:
        """Drop every stored record."""
        with self._lock:
            self._timestamps_by_key.clear()
