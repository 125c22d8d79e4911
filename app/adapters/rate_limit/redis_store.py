"""Redis rate limit storage using one sorted set per client.

Layout:
- key: ``<prefix><client_key>`` (default prefix ``rate_limit:``)
- score: admission timestamp (UNIX seconds)
- member: ``<timestamp>:<random hex>`` so same-second requests stay distinct

Every write refreshes a TTL of two windows on the key, so abandoned clients
disappear even if cleanup never runs. Socket timeouts bound each call.

On any Redis error the connection is closed and dropped, and calls degrade to
0/no-op. count_requests/record_request never reconnect. is_healthy() always
tries to reconnect; cleanup_expired(), which runs before every admission
check, tries at most once per reconnect interval so the limiter closes again
soon after an outage ends.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Any, Callable

import redis

from app.adapters.rate_limit.base import AbstractRateLimitStorage

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400
DEFAULT_RECONNECT_INTERVAL_SECONDS = 5.0

ClientFactory = Callable[[], "redis.Redis"]


def build_redis_client_factory(
    *,
    host: str,
    port: int,
    database: int = 0,
    password: str | None = None,
    timeout_seconds: float = 5.0,
) -> ClientFactory:
    """Return a factory creating redis-py clients with bounded timeouts."""

    def _factory() -> redis.Redis:
        return redis.Redis(
            host=host,
            port=port,
            db=database,
            password=password,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
            decode_responses=True,
        )

    return _factory


class RedisRateLimitStorage(AbstractRateLimitStorage):
    """Rate limit storage shared by every process pointing at one Redis."""

    storage_type = "redis"

    def __init__(
        self,
        client_factory: ClientFactory,
        *,
        window_seconds: int,
        key_prefix: str = "rate_limit:",
        reconnect_interval_seconds: float = DEFAULT_RECONNECT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Connect to Redis.

        A failed initial connection is logged, not raised; the store then
        reports unhealthy until a reconnect succeeds.

        Args:
            client_factory: Creates a redis-py client (connection pool inside).
            window_seconds: Rate limit window; keys expire after twice this.
            key_prefix: Namespace for per-client keys.
            reconnect_interval_seconds: Minimum gap between reconnect attempts
                made from cleanup_expired().
            clock: Time source for stats timestamps and reconnect throttling.
        """
        self._client_factory = client_factory
        self._window_seconds = window_seconds
        self._key_prefix = key_prefix
        self._reconnect_interval = reconnect_interval_seconds
        self._clock = clock
        self._connect_lock = threading.Lock()
        self._last_connect_attempt = 0.0
        self._client: redis.Redis | None = self._connect()

    def _key(self, client_key: str) -> str:
        return f"{self._key_prefix}{client_key}"

    def _connect(self) -> redis.Redis | None:
        self._last_connect_attempt = self._clock()
        client = None
        try:
            client = self._client_factory()
            client.ping()
        except redis.RedisError as exc:
            logger.error("storage.redis.connect_failed", extra={"error": str(exc)})
            if client is not None:
                self._close_client(client)
            return None
        logger.info("storage.redis.connected", extra={"key_prefix": self._key_prefix})
        return client

    def _reconnect(self, *, throttled: bool) -> redis.Redis | None:
        with self._connect_lock:
            if self._client is None:
                due = self._clock() - self._last_connect_attempt >= self._reconnect_interval
                if due or not throttled:
                    self._client = self._connect()
            return self._client

    @staticmethod
    def _close_client(client: redis.Redis) -> None:
        try:
            client.close()
        except redis.RedisError as exc:
            logger.debug("storage.redis.close_failed", extra={"error": str(exc)})

    def _discard(self, client: redis.Redis) -> None:
        with self._connect_lock:
            if self._client is client:
                self._client = None
        self._close_client(client)

    def _drop_connection(self, client: redis.Redis, operation: str, exc: redis.RedisError) -> None:
        logger.error(
            "storage.redis.error",
            extra={"operation": operation, "error": str(exc)},
        )
        self._discard(client)

    def _scan_keys(self, client: redis.Redis) -> list[str]:
        return list(client.scan_iter(match=f"{self._key_prefix}*"))

    def count_requests(self, client_key: str, window_start: int) -> int:
        client = self._client
        if client is None:
            return 0
        try:
            return int(client.zcount(self._key(client_key), window_start, "+inf"))
        except redis.RedisError as exc:
            self._drop_connection(client, "count_requests", exc)
            return 0

    def record_request(self, client_key: str, timestamp: int) -> None:
        client = self._client
        if client is None:
            return
        key = self._key(client_key)
        member = f"{int(timestamp)}:{uuid.uuid4().hex}"
        try:
            pipe = client.pipeline()
            pipe.zadd(key, {member: int(timestamp)})
            pipe.expire(key, self._window_seconds * 2)
            pipe.execute()
        except redis.RedisError as exc:
            self._drop_connection(client, "record_request", exc)

    def cleanup_expired(self, window_start: int) -> int:
        client = self._client
        if client is None:
            client = self._reconnect(throttled=True)
        if client is None:
            return 0
        deleted = 0
        try:
            for key in self._scan_keys(client):
                # "(" makes the bound exclusive: keep scores >= window_start
                deleted += int(client.zremrangebyscore(key, "-inf", f"({window_start}"))
                if client.zcard(key) == 0:
                    client.delete(key)
        except redis.RedisError as exc:
            self._drop_connection(client, "cleanup_expired", exc)
        return deleted

    def is_healthy(self) -> bool:
        client = self._client
        if client is None:
            client = self._reconnect(throttled=False)
        if client is None:
            return False
        try:
            return bool(client.ping())
        except redis.RedisError as exc:
            logger.warning("storage.redis.health_failed", extra={"error": str(exc)})
            self._discard(client)
            return False

    def get_stats(self) -> dict[str, Any]:
        now = int(self._clock())
        client = self._client
        if client is None:
            return {
                "storage_type": self.storage_type,
                "error": "Redis not available",
                "last_check": now,
            }
        try:
            info = client.info()
            keys = self._scan_keys(client)
            total = sum(int(client.zcard(key)) for key in keys)
            recent = sum(int(client.zcount(key, now - _SECONDS_PER_DAY, "+inf")) for key in keys)
        except redis.RedisError as exc:
            logger.error("storage.redis.stats_failed", extra={"error": str(exc)})
            return {
                "storage_type": self.storage_type,
                "error": f"Failed to retrieve stats: {exc}",
                "last_check": now,
            }
        return {
            "storage_type": self.storage_type,
            "redis_version": info.get("redis_version", "unknown"),
            "connected_clients": info.get("connected_clients", 0),
            "used_memory_human": info.get("used_memory_human", "unknown"),
            "total_records": total,
            "unique_clients": len(keys),
            "recent_requests_24h": recent,
            "key_prefix": self._key_prefix,
            "last_check": now,
        }

    def close(self) -> None:
        """Close the underlying connection pool."""
        with self._connect_lock:
            client, self._client = self._client, None
        if client is not None:
            self._close_client(client)
