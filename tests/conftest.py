"""Pytest configuration and fixtures for kvsql tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from kvsql.adapters.outbound import InMemoryKeyValueStore, SqliteKeyValueStore
from kvsql.application import DatabaseEngine
from kvsql.infrastructure.config import Config, EngineConfig, StorageConfig
from kvsql.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with a temporary data directory."""
    return Config(
        storage=StorageConfig(
            backend="sqlite",
            data_dir=temp_dir / "data",
            store_name="TestDB",
        ),
        engine=EngineConfig(seed_demo_data=False),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def sqlite_store(temp_dir: Path) -> SqliteKeyValueStore:
    return SqliteKeyValueStore(temp_dir / "store.db")


@pytest.fixture
def memory_engine() -> Generator[DatabaseEngine, None, None]:
    """An initialized engine over an empty in-memory store."""
    with DatabaseEngine(InMemoryKeyValueStore(), seed_demo_data=False) as db:
        yield db


@pytest.fixture
def sqlite_engine(temp_dir: Path) -> Generator[DatabaseEngine, None, None]:
    """An initialized engine over an empty SQLite store."""
    store = SqliteKeyValueStore(temp_dir / "engine.db")
    with DatabaseEngine(store, seed_demo_data=False) as db:
        yield db


@pytest.fixture(params=["memory", "sqlite"])
def engine(request: pytest.FixtureRequest, temp_dir: Path) -> Generator[DatabaseEngine, None, None]:
    """An initialized engine over each store backend."""
    if request.param == "memory":
        store = InMemoryKeyValueStore()
    else:
        store = SqliteKeyValueStore(temp_dir / "engine.db")
    with DatabaseEngine(store, seed_demo_data=False) as db:
        yield db


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
