"""
Pytest configuration and shared fixtures for MDB_PERSISTENCE tests.

This module provides:
- Configuration fixtures
- Mock motor client fixtures (unittest.mock and mongomock-motor backed)
- Dummy persistences for dict and pydantic documents
- Testcontainers / MONGO_URI fixtures for integration tests
"""

import os
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient
from pydantic import BaseModel

from mdb_persistence.config import ConfigParams
from mdb_persistence.observability import get_metrics_collector
from mdb_persistence.persistence import (
    IdentifiableMongoPersistence,
    ModelDocumentMapper,
)

MOTOR_CLIENT_PATH = "mdb_persistence.persistence.connection.AsyncIOMotorClient"


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: requires a running MongoDB")


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def mongo_config() -> ConfigParams:
    """Provide a host/port/database connection configuration."""
    return ConfigParams.from_tuples(
        "connection.host", "localhost",
        "connection.port", 27017,
        "connection.database", "test",
    )  # fmt: skip


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset the global metrics collector around every test."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


@pytest.fixture
def mock_motor_client() -> MagicMock:
    """Create a mock motor client that answers ping."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.close = MagicMock()
    return client


class MockMotorClient:
    """
    Motor client stand-in backed by mongomock-motor.

    Answers ``admin.command("ping")`` and records ``close`` calls; databases
    and collections come from an in-process mongomock client.
    """

    def __init__(self, *args, **kwargs):
        self.args = args
        self.kwargs = kwargs
        self._client = AsyncMongoMockClient()
        self.admin = MagicMock()
        self.admin.command = AsyncMock(return_value={"ok": 1})
        self.close = MagicMock()

    def __getitem__(self, name):
        return self._client[name]


@pytest.fixture
def mongomock_client() -> MockMotorClient:
    """Create a mongomock-backed motor client."""
    return MockMotorClient()


@pytest.fixture
def patched_motor(mongomock_client):
    """Make every MongoConnection build the mongomock-backed client."""
    with patch(MOTOR_CLIENT_PATH, return_value=mongomock_client) as factory:
        yield factory


# ============================================================================
# DUMMY PERSISTENCES
# ============================================================================


class Dummy(BaseModel):
    """Structured test document."""

    id: Optional[str] = None
    key: str
    content: Optional[str] = None


class DummyMapPersistence(IdentifiableMongoPersistence[dict, str]):
    """Persistence for dict documents."""

    def __init__(self, logger=None):
        super().__init__("dummies", logger=logger)

    async def get_page_by_key(self, correlation_id, key, paging=None):
        return await self.get_page_by_filter(correlation_id, {"key": key}, paging, sort={"key": 1})


class DummyModelPersistence(IdentifiableMongoPersistence[Dummy, str]):
    """Persistence for pydantic documents."""

    def __init__(self):
        super().__init__("dummies", mapper=ModelDocumentMapper(Dummy))


@pytest.fixture
def map_persistence_cls():
    """Provide the dict document persistence class."""
    return DummyMapPersistence


@pytest.fixture
def dummy_model_cls():
    """Provide the pydantic test document class."""
    return Dummy


@pytest_asyncio.fixture
async def map_persistence(patched_motor, mongo_config):
    """Open a dict document persistence over mongomock."""
    persistence = DummyMapPersistence()
    persistence.configure(mongo_config)
    await persistence.open("test")
    yield persistence
    await persistence.close("test")


@pytest_asyncio.fixture
async def model_persistence(patched_motor, mongo_config):
    """Open a pydantic document persistence over mongomock."""
    persistence = DummyModelPersistence()
    persistence.configure(mongo_config)
    await persistence.open("test")
    yield persistence
    await persistence.close("test")


# ============================================================================
# INTEGRATION FIXTURES (Real MongoDB)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_connection_string():
    """
    Get a connection string for a real MongoDB.

    Uses ``MONGO_URI`` when set; otherwise starts a MongoDB container with
    testcontainers when ``MONGO_TESTCONTAINERS`` is set. Skips otherwise.
    """
    uri = os.getenv("MONGO_URI")
    if uri:
        yield uri
        return

    if not os.getenv("MONGO_TESTCONTAINERS"):
        pytest.skip("Set MONGO_URI or MONGO_TESTCONTAINERS=1 to run integration tests")

    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[integration]'")

    with MongoDbContainer(image="mongo:7") as container:
        exposed_port = container.get_exposed_port(27017)
        host = container.get_container_host_ip()
        yield f"mongodb://{container.username}:{container.password}@{host}:{exposed_port}/?directConnection=true"
