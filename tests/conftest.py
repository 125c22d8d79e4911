"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before any test module, so the
environment below is in place before app.core.config builds its settings.
"""

import fnmatch
import os
import threading

import pytest
import redis

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LLM_PROVIDER", "demo")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "50")
os.environ.setdefault("RATE_LIMIT_TIME_WINDOW_SECONDS", "900")
os.environ.setdefault("LOG_LEVEL", "WARNING")


def _parse_bound(value) -> tuple[float, bool]:
    """Parse a Redis score bound into (number, exclusive)."""
    text = str(value)
    exclusive = text.startswith("(")
    if exclusive:
        text = text[1:]
    if text in ("-inf", "+inf", "inf"):
        return float(text if text != "inf" else "+inf"), exclusive
    return float(text), exclusive


def _in_range(score: float, low, high) -> bool:
    low_v, low_ex = _parse_bound(low)
    high_v, high_ex = _parse_bound(high)
    above = score > low_v if low_ex else score >= low_v
    below = score < high_v if high_ex else score <= high_v
    return above and below


class FakeRedis:
    """Sorted-set subset of the redis-py client, kept in process.

    Setting ``fail = True`` makes every call raise ``redis.ConnectionError``.
    """

    def __init__(self) -> None:
        self.zsets: dict[str, dict[str, float]] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False
        self._lock = threading.RLock()

    def _check(self) -> None:
        if self.fail:
            raise redis.ConnectionError("connection refused")

    def ping(self) -> bool:
        self._check()
        return True

    def zadd(self, key, mapping) -> int:
        self._check()
        with self._lock:
            zset = self.zsets.setdefault(key, {})
            added = sum(1 for member in mapping if member not in zset)
            zset.update({member: float(score) for member, score in mapping.items()})
            return added

    def zcount(self, key, low, high) -> int:
        self._check()
        with self._lock:
            scores = list(self.zsets.get(key, {}).values())
        return sum(1 for score in scores if _in_range(score, low, high))

    def zcard(self, key) -> int:
        self._check()
        with self._lock:
            return len(self.zsets.get(key, {}))

    def zremrangebyscore(self, key, low, high) -> int:
        self._check()
        with self._lock:
            zset = self.zsets.get(key, {})
            doomed = [member for member, score in zset.items() if _in_range(score, low, high)]
            for member in doomed:
                del zset[member]
            return len(doomed)

    def expire(self, key, seconds) -> bool:
        self._check()
        self.ttls[key] = int(seconds)
        return key in self.zsets

    def delete(self, *keys) -> int:
        self._check()
        removed = 0
        with self._lock:
            for key in keys:
                if self.zsets.pop(key, None) is not None:
                    removed += 1
                self.ttls.pop(key, None)
        return removed

    def scan_iter(self, match=None):
        self._check()
        with self._lock:
            keys = list(self.zsets)
        for key in keys:
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def info(self) -> dict:
        self._check()
        return {"redis_version": "7.2.0", "connected_clients": 1, "used_memory_human": "1.00M"}

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)

    def close(self) -> None:
        pass


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self._client = client
        self._calls: list = []

    def zadd(self, key, mapping):
        self._calls.append(("zadd", key, mapping))
        return self

    def expire(self, key, seconds):
        self._calls.append(("expire", key, seconds))
        return self

    def execute(self) -> list:
        self._client._check()
        results = [getattr(self._client, name)(*args) for name, *args in self._calls]
        self._calls = []
        return results


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def knowledge_dir(tmp_path):
    """Directory with two small knowledge base files."""
    path = tmp_path / "knowledge"
    path.mkdir()
    (path / "01-about.md").write_text("# About\nWe build chatbots.", encoding="utf-8")
    (path / "02-hours.md").write_text("# Hours\nOpen 9 to 18.", encoding="utf-8")
    return path


@pytest.fixture
def make_app(knowledge_dir):
    """Build an isolated app; keyword overrides replace the defaults."""
    from app.adapters.llm.demo_client import DemoLLMClient
    from app.adapters.rate_limit.in_memory import InMemoryRateLimitStorage
    from app.core.app_factory import create_app
    from app.services.knowledge_base import FilesystemKnowledgeProvider, KnowledgeBaseService
    from app.services.rate_limit_service import RateLimitService

    def _make(**overrides):
        overrides.setdefault(
            "rate_limiter",
            RateLimitService(InMemoryRateLimitStorage(), max_requests=50, window_seconds=900),
        )
        overrides.setdefault("llm_client", DemoLLMClient())
        overrides.setdefault(
            "knowledge_service",
            KnowledgeBaseService(FilesystemKnowledgeProvider(knowledge_dir)),
        )
        return create_app(**overrides)

    return _make
