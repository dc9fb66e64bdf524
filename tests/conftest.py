"""
Pytest configuration and fixtures for record-pipeline tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import io
import json
import logging
from typing import Generator

import pytest
from testcontainers.postgres import PostgresContainer

from src.consumer import BatchConsumer
from src.export import Exporter, LocalBlobStore
from src.messaging import InMemoryMessageQueue
from src.observability.logger import ContextLogger, setup_logger
from src.observability.metrics import MetricsCollector
from src.warehouse.connection import DatabaseConnectionPool
from src.warehouse.schema_mgmt import SchemaManager
from src.warehouse.store import InMemoryRecordStore
from src.warehouse.writer import IdempotentWriter

TEST_LOGGER_NAME = "record-pipeline-test"


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# LOGGING FIXTURES
# =======================

class LogBuffer:
    """Captures JSON log lines written by a test logger."""

    def __init__(self, stream: io.StringIO):
        self.stream = stream

    @property
    def events(self) -> list[dict]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line.strip()]

    def messages(self) -> list[str]:
        return [event["message"] for event in self.events]

    def find(self, message: str) -> list[dict]:
        return [event for event in self.events if event["message"] == message]


@pytest.fixture(scope="function")
def log_buffer() -> Generator[LogBuffer, None, None]:
    """
    JSON logger writing into memory

    Yields:
        LogBuffer for the test logger
    """
    stream = io.StringIO()
    setup_logger(TEST_LOGGER_NAME, level="DEBUG", format_type="json", stream=stream)
    yield LogBuffer(stream)
    logging.getLogger(TEST_LOGGER_NAME).handlers.clear()


@pytest.fixture(scope="function")
def test_logger(log_buffer) -> ContextLogger:
    """Context logger bound to the log buffer"""
    return ContextLogger(logging.getLogger(TEST_LOGGER_NAME), {"service": "test-service", "version": "0.0.1"})


# =======================
# IN-MEMORY FIXTURES
# =======================

@pytest.fixture(scope="function")
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture(scope="function")
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture(scope="function")
def memory_queue() -> InMemoryMessageQueue:
    return InMemoryMessageQueue()


@pytest.fixture(scope="function")
def writer(memory_store, test_logger, metrics) -> IdempotentWriter:
    return IdempotentWriter(memory_store, logger=test_logger, metrics=metrics)


@pytest.fixture(scope="function")
def consumer(writer, test_logger, metrics) -> BatchConsumer:
    return BatchConsumer(writer, logger=test_logger, metrics=metrics, max_batch_size=10)


@pytest.fixture(scope="function")
def local_blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture(scope="function")
def exporter(memory_store, local_blob_store, test_logger, metrics) -> Exporter:
    return Exporter(memory_store, local_blob_store, logger=test_logger, metrics=metrics)


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_records",
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="session")
def pg_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Session-wide connection pool with the pipeline schema created

    Args:
        postgres_container: PostgreSQL container fixture

    Yields:
        Open DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_records",
        user="test_pipeline",
        password="test_password",
        min_size=1,
        max_size=10,
    )
    pool.open()
    SchemaManager(pool).ensure_schema()

    yield pool

    pool.close()


@pytest.fixture(scope="function")
def clean_db(pg_pool) -> DatabaseConnectionPool:
    """
    Provide a clean database by truncating the pipeline tables before each test

    Args:
        pg_pool: Session-wide pool

    Returns:
        The same pool, with empty tables
    """
    SchemaManager(pg_pool).truncate_all()
    return pg_pool
