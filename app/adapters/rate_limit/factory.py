"""Factory for building the configured rate limit storage."""

from app.adapters.rate_limit.base import AbstractRateLimitStorage
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStorage
from app.adapters.rate_limit.redis_store import RedisRateLimitStorage, build_redis_client_factory
from app.adapters.rate_limit.sqlite import SqliteRateLimitStorage
from app.core.config import Settings, settings as default_settings
from app.core.errors import ValidationAppError


def create_rate_limit_storage(settings: Settings | None = None) -> AbstractRateLimitStorage:
    """Instantiate the storage backend named by RATE_LIMIT_BACKEND.

    Args:
        settings: Settings to read; defaults to the global settings.

    Returns:
        AbstractRateLimitStorage: Ready-to-use storage instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = settings or default_settings
    backend = cfg.rate_limit.backend.lower()

    if backend == "sqlite":
        return SqliteRateLimitStorage(
            cfg.rate_limit.database_path,
            timeout_seconds=cfg.rate_limit.storage_timeout_seconds,
        )

    if backend == "redis":
        return RedisRateLimitStorage(
            build_redis_client_factory(
                host=cfg.redis.host,
                port=cfg.redis.port,
                database=cfg.redis.database,
                password=cfg.redis.password,
                timeout_seconds=cfg.rate_limit.storage_timeout_seconds,
            ),
            window_seconds=cfg.rate_limit.time_window_seconds,
            key_prefix=cfg.rate_limit.key_prefix,
        )

    if backend == "memory":
        return InMemoryRateLimitStorage()

    raise ValidationAppError(
        code="rate_limit_unknown_backend",
        message=(
            f"Unknown rate limit backend: '{backend}'. Supported backends: sqlite, redis, memory"
        ),
    )
