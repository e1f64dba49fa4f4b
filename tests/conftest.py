"""
Pytest Configuration and Fixtures for Kilnbook Tests
====================================================

Purpose
-------
Shared fixtures for the unit and integration suites.

Responsibilities
----------------
- Testcontainers setup for PostgreSQL and Redis
- ``DatabaseService`` / ``RedisService`` lifecycle around integration tests
- In-memory cache stack with a controllable clock for unit tests
- Mocked studio repositories and transaction provider

Architecture Notes
------------------
- Unit tests use ``MemoryKeyValueStore`` and mocks (fast, no I/O)
- Integration tests use testcontainers and are skipped when Docker is not
  reachable
- Containers are session scoped; services and schema cleanup are per test
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator

import docker
import pytest
from docker.errors import DockerException
from sqlalchemy import delete
from testcontainers.postgres import PostgresContainer
from testcontainers.redis import RedisContainer

from src.core.cache.invalidation import CacheInvalidationDispatcher
from src.core.cache.manager import CacheManager
from src.core.cache.metrics import PerformanceMonitor
from src.core.cache.store import MemoryKeyValueStore
from src.core.database.base import Base
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService
from src.modules.studio.data_access import StudioDataAccess, StudioRepositories

logger = get_logger(__name__)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")
    os.environ.setdefault("CACHE_BACKEND", "memory")


def _docker_available() -> bool:
    try:
        client = docker.from_env()
        client.ping()
        client.close()
        return True
    except DockerException:
        return False


def pytest_collection_modifyitems(config, items):
    integration = [item for item in items if "integration" in item.keywords]
    if not integration or _docker_available():
        return

    skip = pytest.mark.skip(reason="Docker is not available for testcontainers")
    for item in integration:
        item.add_marker(skip)


# ============================================================================
# TIME FIXTURES (Unit Tests)
# ============================================================================


class FakeClock:
    """Settable clock returning seconds; callable like ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def perf_clock() -> FakeClock:
    return FakeClock(start=100.0)


# ============================================================================
# CACHE FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore(capacity=64 * 1024)


@pytest.fixture
def cache_manager(memory_store, clock) -> CacheManager:
    return CacheManager(memory_store, clock=clock)


@pytest.fixture
def dispatcher(cache_manager) -> CacheInvalidationDispatcher:
    return CacheInvalidationDispatcher(cache_manager)


@pytest.fixture
def monitor(perf_clock, clock) -> PerformanceMonitor:
    return PerformanceMonitor(timing_window_seconds=10, perf_counter=perf_clock, clock=clock)


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_repositories(mocker) -> StudioRepositories:
    """
    Every repository replaced by an ``AsyncMock``.

    Scope: function
    Uses: data-access tests that count database reads
    """
    return StudioRepositories(
        glazes=mocker.AsyncMock(),
        firing_logs=mocker.AsyncMock(),
        kilns=mocker.AsyncMock(),
        clay_bodies=mocker.AsyncMock(),
        raw_materials=mocker.AsyncMock(),
        sessions=mocker.AsyncMock(),
        settings=mocker.AsyncMock(),
    )


@pytest.fixture
def mock_database_service(mocker):
    """
    Mock DatabaseService whose ``get_transaction`` yields a sentinel session.

    Scope: function
    Uses: multi-table writes (finish session, import)
    """
    mock_service = mocker.MagicMock()
    mock_service.session = mocker.MagicMock(name="session")

    @asynccontextmanager
    async def _transaction():
        yield mock_service.session

    mock_service.get_transaction = _transaction
    return mock_service


@pytest.fixture
def data_access(
    cache_manager, dispatcher, monitor, mock_repositories, mock_database_service
) -> StudioDataAccess:
    return StudioDataAccess(
        cache_manager=cache_manager,
        dispatcher=dispatcher,
        monitor=monitor,
        repositories=mock_repositories,
        database_service=mock_database_service,
    )


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()
    logger.info("PostgreSQL testcontainer started")

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, None, None]:
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting Redis testcontainer...")
    container = RedisContainer(image="redis:7-alpine")
    container.start()
    logger.info(
        "Redis testcontainer started: %s:%s",
        container.get_container_host_ip(),
        container.get_exposed_port(6379),
    )

    yield container

    logger.info("Stopping Redis testcontainer...")
    container.stop()


# ============================================================================
# SERVICE FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture
async def database(postgres_container) -> AsyncGenerator[type[DatabaseService], None]:
    """
    Initialized ``DatabaseService`` with the studio schema.

    Scope: function (every table emptied after the test)
    """
    await DatabaseService.initialize(postgres_container.get_connection_url())
    await DatabaseService.create_schema()

    yield DatabaseService

    async with DatabaseService.get_transaction() as session:
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(delete(table))
    await DatabaseService.shutdown()


@pytest.fixture
async def redis_service(redis_container) -> AsyncGenerator[type[RedisService], None]:
    """
    Initialized ``RedisService`` on a flushed database.

    Scope: function
    """
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    await RedisService.initialize(f"redis://{host}:{port}/0")
    await RedisService.client().flushdb()

    yield RedisService

    await RedisService.shutdown()
