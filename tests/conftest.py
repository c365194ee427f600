"""Shared test fixtures."""

import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault(
    "LOG_DIR", str(Path(tempfile.gettempdir()) / "edumarket-test-logs")
)

from cassandra.cluster import Session  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402


class FakeResult:
    """Stand-in for a cassandra-driver ResultSet."""

    def __init__(self, rows: list[Any] | None = None, was_applied: bool = True):
        self.rows = list(rows or [])
        self.was_applied = was_applied

    def one(self) -> Any:
        return self.rows[0] if self.rows else None

    def __iter__(self) -> Iterator[Any]:
        return iter(self.rows)


@pytest.fixture
def make_result() -> Callable[..., FakeResult]:
    """Factory for fake result sets."""

    def _make(rows: list[Any] | None = None, was_applied: bool = True) -> FakeResult:
        return FakeResult(rows, was_applied)

    return _make


@pytest.fixture
def mock_session() -> Mock:
    """Mock Cassandra session.

    Prepared statements are distinct mocks carrying their CQL, so tests can
    route ``aexecute`` calls by identity (``stmt is service._get_course``).
    Must be set up before the service under test is constructed.
    """
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(query_string=cql))
    session.aexecute = AsyncMock(return_value=FakeResult())
    return session


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client with an empty cache."""
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.setex = AsyncMock(return_value=True)
    return redis_mock


@pytest.fixture
def client() -> TestClient:
    """Test client without lifespan (no Cassandra, no Redis)."""
    from edumarket.main import app

    return TestClient(app)
