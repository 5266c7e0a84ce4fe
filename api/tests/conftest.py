"""Shared test fixtures.

Cassandra sessions are mocked; prepared statements are distinct mocks so a
test can script what each query returns.
"""

import itertools
import os
from unittest.mock import AsyncMock, Mock

import pytest
from cassandra.cluster import Session


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-key-for-academy-tokens-32chars")
os.environ.setdefault("ACADEMY_ADMIN_EMAILS", '["admin@quitcode.dev"]')
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from src.core.redis import IdAllocator  # noqa: E402
from support import StatementResults  # noqa: E402


@pytest.fixture
def results() -> StatementResults:
    """Scripted query results."""
    return StatementResults()


@pytest.fixture
def mock_session(results: StatementResults):
    """Mock Cassandra session with one mock per prepared statement."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(name="prepared", query_string=cql))
    # cassandra-asyncio-driver
    session.aexecute = AsyncMock(side_effect=results.execute)
    return session


@pytest.fixture
def mock_ids():
    """Id allocator handing out 100, 101, ... regardless of table."""
    allocator = Mock(spec=IdAllocator)
    counter = itertools.count(100)
    allocator.next_id = AsyncMock(side_effect=lambda table: next(counter))
    return allocator


@pytest.fixture
def app():
    """Application without lifespan (no database, no Redis)."""
    from src.main import create_app

    return create_app()


@pytest.fixture
def client(app) -> TestClient:
    """Test client for the API."""
    return TestClient(app)
