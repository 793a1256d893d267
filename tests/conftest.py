"""Shared test fixtures for the async document store, registries, and seeding."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from fieldops.core.config import Settings
from fieldops.lib.partitioning import PartitionRegistry, default_registry
from fieldops.lib.store import InsertOne, SqlDocumentStore

Seeder = Callable[[str, list[dict[str, Any]]], Awaitable[None]]


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        dry_run=True,
        live_run_grace_seconds=0,
    )


@pytest.fixture
def registry() -> PartitionRegistry:
    """The production AC registry."""
    return default_registry()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine shared across connections."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture
def store(async_engine: AsyncEngine) -> SqlDocumentStore:
    """Empty document store over the in-memory engine."""
    return SqlDocumentStore(async_engine)


@pytest.fixture
def seed(store: SqlDocumentStore) -> Seeder:
    """Insert documents into a (created on demand) collection."""

    async def _seed(name: str, documents: list[dict[str, Any]]) -> None:
        await store.collection(name, create=True).bulk_write([InsertOne(doc) for doc in documents])

    return _seed
