"""SQLite-specific behavior of the rate limit storage."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import inspect, text

from app.adapters.rate_limit.sqlite import SqliteRateLimitStorage, _format_bytes
from app.core.errors import StorageUnavailableError

NOW = 1_700_000_000


@pytest.fixture
def store(tmp_path: Path):
    storage = SqliteRateLimitStorage(str(tmp_path / "data" / "rate_limit.db"), clock=lambda: NOW)
    yield storage
    storage.close()


def test_creates_missing_data_directory_and_file(store: SqliteRateLimitStorage, tmp_path: Path) -> None:
    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "data" / "rate_limit.db").is_file()


def test_schema_matches_audit_contract(store: SqliteRateLimitStorage) -> None:
    inspector = inspect(store.engine)

    columns = {col["name"] for col in inspector.get_columns("rate_limits")}
    assert columns == {"id", "client_key", "request_time", "created_at"}

    indexes = {idx["name"]: idx["column_names"] for idx in inspector.get_indexes("rate_limits")}
    assert indexes["idx_client_time"] == ["client_key", "request_time"]


def test_records_are_visible_to_raw_sql(store: SqliteRateLimitStorage) -> None:
    store.record_request("8.8.8.8", NOW)

    with store.engine.connect() as conn:
        row = conn.execute(
            text("SELECT client_key, request_time, created_at FROM rate_limits")
        ).one()

    assert row.client_key == "8.8.8.8"
    assert row.request_time == NOW
    assert row.created_at is not None


def test_reopening_existing_database_keeps_records(tmp_path: Path) -> None:
    path = str(tmp_path / "rate_limit.db")
    first = SqliteRateLimitStorage(path)
    first.record_request("8.8.8.8", NOW)
    first.close()

    second = SqliteRateLimitStorage(path)
    try:
        assert second.count_requests("8.8.8.8", NOW - 60) == 1
    finally:
        second.close()


def test_in_memory_database_is_shared_across_calls() -> None:
    store = SqliteRateLimitStorage(":memory:")

    store.record_request("8.8.8.8", NOW)
    store.record_request("8.8.8.8", NOW)

    assert store.count_requests("8.8.8.8", NOW - 60) == 2
    assert "database_size_bytes" not in store.get_stats()


def test_stats_include_file_size_and_recent_requests(store: SqliteRateLimitStorage) -> None:
    store.record_request("1.1.1.1", NOW - 2 * 86400)
    store.record_request("1.1.1.1", NOW - 10)

    stats = store.get_stats()

    assert stats["storage_type"] == "sqlite"
    assert stats["total_records"] == 2
    assert stats["recent_requests_24h"] == 1
    assert stats["database_size_bytes"] > 0
    assert stats["database_size_human"].endswith(("B", "KB", "MB", "GB"))
    assert stats["database_path"].endswith("rate_limit.db")


def test_unreadable_database_file_omits_size(store: SqliteRateLimitStorage) -> None:
    store.record_request("1.1.1.1", NOW)

    with patch("app.adapters.rate_limit.sqlite.Path") as path_cls:
        path_cls.return_value.is_file.return_value = True
        path_cls.return_value.stat.side_effect = PermissionError("denied")
        stats = store.get_stats()

    assert stats["total_records"] == 1
    assert "database_size_bytes" not in stats
    assert "error" not in stats
    assert stats["last_check"] == NOW


def test_broken_table_degrades_to_zero_and_reports_error(store: SqliteRateLimitStorage) -> None:
    with store.engine.begin() as conn:
        conn.execute(text("DROP TABLE rate_limits"))

    assert store.count_requests("8.8.8.8", NOW - 60) == 0
    store.record_request("8.8.8.8", NOW)
    assert store.cleanup_expired(NOW - 60) == 0

    stats = store.get_stats()
    assert stats["error"] == "Failed to retrieve stats"
    assert stats["last_check"] == NOW


def test_init_failure_raises_storage_unavailable(tmp_path: Path) -> None:
    # A directory where the database file should be cannot be opened
    blocked = tmp_path / "not_a_file.db"
    blocked.mkdir()

    with pytest.raises(StorageUnavailableError) as exc_info:
        SqliteRateLimitStorage(str(blocked))

    assert exc_info.value.code == "rate_limit_storage_init_failed"


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (512, "512.0 B"),
        (2048, "2.0 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (3 * 1024**3, "3.0 GB"),
    ],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert _format_bytes(size) == expected
