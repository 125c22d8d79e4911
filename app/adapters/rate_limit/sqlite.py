"""SQLite rate limit storage built on SQLAlchemy Core.

Suited to single-host deployments: every worker on the host shares one
database file and SQLite's own file locking serializes writers. Each call
is bounded by the SQLite busy timeout.

The ``rate_limits`` table is a durable contract that audit tooling may
query directly:

    rate_limits(id, client_key, request_time, created_at)
    idx_client_time(client_key, request_time)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
    delete,
    func,
    insert,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from app.adapters.rate_limit.base import AbstractRateLimitStorage
from app.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

IN_MEMORY_PATH = ":memory:"
_SECONDS_PER_DAY = 86400

metadata = MetaData()

rate_limits = Table(
    "rate_limits",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_key", Text, nullable=False),
    Column("request_time", Integer, nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    Index("idx_client_time", "client_key", "request_time"),
    sqlite_autoincrement=True,
)


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 2)} {unit}"
        value /= 1024
    return f"{round(value, 2)} GB"


def _build_engine(database_path: str, timeout_seconds: float) -> Engine:
    connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
    if database_path == IN_MEMORY_PATH:
        # One shared connection, otherwise every pool checkout sees an empty db
        return create_engine(
            "sqlite://",
            connect_args=connect_args,
            poolclass=StaticPool,
        )
    return create_engine(f"sqlite:///{database_path}", connect_args=connect_args)


class SqliteRateLimitStorage(AbstractRateLimitStorage):
    """Rate limit storage in a single SQLite file."""

    storage_type = "sqlite"

    def __init__(
        self,
        database_path: str,
        *,
        timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Open (and create if needed) the database.

        Args:
            database_path: Path to the SQLite file, or ":memory:".
            timeout_seconds: SQLite busy timeout applied to every statement.
            clock: Time source for stats timestamps.

        Raises:
            StorageUnavailableError: If the database cannot be created.
        """
        self._database_path = database_path
        self._clock = clock

        if database_path != IN_MEMORY_PATH:
            data_dir = Path(database_path).parent
            if not data_dir.is_dir():
                data_dir.mkdir(parents=True, exist_ok=True)
                logger.info("storage.sqlite.dir_created", extra={"path": str(data_dir)})

        try:
            self._engine = _build_engine(database_path, timeout_seconds)
            metadata.create_all(self._engine)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "storage.sqlite.init_failed",
                extra={"error": str(exc), "path": database_path},
            )
            raise StorageUnavailableError(
                code="rate_limit_storage_init_failed",
                message=f"Failed to initialize rate limit database at {database_path}",
                details={"path": database_path},
            ) from exc

        logger.info("storage.sqlite.initialized", extra={"path": database_path})

    @property
    def engine(self) -> Engine:
        return self._engine

    def count_requests(self, client_key: str, window_start: int) -> int:
        stmt = (
            select(func.count())
            .select_from(rate_limits)
            .where(rate_limits.c.client_key == client_key)
            .where(rate_limits.c.request_time >= window_start)
        )
        try:
            with self._engine.connect() as conn:
                count = conn.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            logger.error(
                "storage.sqlite.count_failed",
                extra={"error": str(exc), "window_start": window_start},
            )
            return 0
        return int(count)

    def record_request(self, client_key: str, timestamp: int) -> None:
        stmt = insert(rate_limits).values(client_key=client_key, request_time=int(timestamp))
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "storage.sqlite.record_failed",
                extra={"error": str(exc), "timestamp": timestamp},
            )

    def cleanup_expired(self, window_start: int) -> int:
        stmt = delete(rate_limits).where(rate_limits.c.request_time < window_start)
        try:
            with self._engine.begin() as conn:
                deleted = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            logger.error(
                "storage.sqlite.cleanup_failed",
                extra={"error": str(exc), "window_start": window_start},
            )
            return 0
        return max(0, deleted or 0)

    def is_healthy(self) -> bool:
        try:
            with self._engine.connect() as conn:
                return conn.execute(text("SELECT 1")).scalar() == 1
        except SQLAlchemyError as exc:
            logger.warning("storage.sqlite.health_failed", extra={"error": str(exc)})
            return False

    def get_stats(self) -> dict[str, Any]:
        now = int(self._clock())
        stats: dict[str, Any] = {
            "storage_type": self.storage_type,
            "database_path": self._database_path,
        }
        try:
            with self._engine.connect() as conn:
                stats["total_records"] = conn.execute(
                    select(func.count()).select_from(rate_limits)
                ).scalar_one()
                stats["unique_clients"] = conn.execute(
                    select(func.count(rate_limits.c.client_key.distinct()))
                ).scalar_one()
                stats["recent_requests_24h"] = conn.execute(
                    select(func.count())
                    .select_from(rate_limits)
                    .where(rate_limits.c.request_time >= now - _SECONDS_PER_DAY)
                ).scalar_one()
        except SQLAlchemyError as exc:
            logger.error("storage.sqlite.stats_failed", extra={"error": str(exc)})
            stats["error"] = "Failed to retrieve stats"
            stats["last_check"] = now
            return stats

        db_file = Path(self._database_path)
        if self._database_path != IN_MEMORY_PATH and db_file.is_file():
            try:
                size = db_file.stat().st_size
            except OSError as exc:
                logger.warning("storage.sqlite.size_failed", extra={"error": str(exc)})
            else:
                stats["database_size_bytes"] = size
                stats["database_size_human"] = _format_bytes(size)

        stats["last_check"] = now
        return stats

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
