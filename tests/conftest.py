"""Pytest configuration and fixtures for tabular_store tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from tabular_store.adapters.outbound import InMemorySnapshotStore
from tabular_store.application import Database, PersistenceQueue
from tabular_store.infrastructure.config import (
    Config,
    PersistenceConfig,
    StorageConfig,
)
from tabular_store.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with temporary directories."""
    return Config(
        storage=StorageConfig(
            data_dir=temp_dir / "data",
            database_name="test_db",
            sync_mode="none",  # Faster for tests
        ),
        persistence=PersistenceConfig(
            max_retries=3,
            backoff_base_seconds=0.001,
        ),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def memory_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def memory_db(
    memory_store: InMemorySnapshotStore,
    metrics_registry: MetricsRegistry,
) -> Generator[Database, None, None]:
    """A database persisting to an in-memory store."""
    queue = PersistenceQueue(memory_store, backoff_base=0.001, metrics=metrics_registry)
    db = Database("test_db", store=memory_store, queue=queue, metrics=metrics_registry)
    yield db
    db.close(timeout=5.0)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
