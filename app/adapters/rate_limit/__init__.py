"""Rate limit storage adapters.

This package keeps per-client request timestamps behind a small interface so
the embedded SQLite store can be swapped for Redis (or the in-memory store in
tests) without changing the admission logic.
"""

from app.adapters.rate_limit.base import AbstractRateLimitStorage, RateLimitDecision
from app.adapters.rate_limit.factory import create_rate_limit_storage
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStorage
from app.adapters.rate_limit.redis_store import RedisRateLimitStorage
from app.adapters.rate_limit.sqlite import SqliteRateLimitStorage

__all__ = [
    "AbstractRateLimitStorage",
    "InMemoryRateLimitStorage",
    "RateLimitDecision",
    "RedisRateLimitStorage",
    "SqliteRateLimitStorage",
    "create_rate_limit_storage",
]
