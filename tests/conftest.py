"""Shared test fixtures for kindstore."""

import os
from collections.abc import Generator

import pytest

from kindstore import KindStore, RecordService, SQLEntityStore


def _psycopg_available() -> bool:
    """Check if psycopg is installed."""
    try:
        import psycopg  # noqa: F401

        return True
    except ImportError:
        return False


def _postgresql_connectable(url: str) -> bool:
    """Check if we can connect to PostgreSQL."""
    if not _psycopg_available():
        return False
    try:
        from kindstore.core.connection import DatabaseConnection

        conn = DatabaseConnection(url)
        result = conn.test_connection()
        conn.close()
        return result
    except Exception:
        return False


@pytest.fixture
def postgresql_url() -> str:
    """Get PostgreSQL URL from environment or use default.

    Skips the test when psycopg is missing or the server is unreachable.
    """
    url = os.environ.get("TEST_DATABASE_URL") or "postgresql://localhost/kindstore_test"

    if not _psycopg_available():
        pytest.skip("psycopg not installed")
    if not _postgresql_connectable(url):
        pytest.skip(f"Cannot connect to PostgreSQL at {url}")

    return url


@pytest.fixture
def memory_store() -> Generator[KindStore, None, None]:
    """Create a KindStore with SQLite in-memory."""
    store = KindStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def entity_store(memory_store: KindStore) -> SQLEntityStore:
    """The raw entity store behind ``memory_store``."""
    return memory_store.store


@pytest.fixture
def people(memory_store: KindStore) -> RecordService:
    """Record service for the Person kind."""
    return memory_store.service("Person")


@pytest.fixture
def pg_store(postgresql_url: str) -> Generator[KindStore, None, None]:
    """Create a KindStore with PostgreSQL, dropping the entity table afterwards."""
    store = KindStore(postgresql_url)
    yield store
    from sqlalchemy import text

    with store._connection.engine.connect() as conn:
        conn.execute(text("DROP TABLE IF EXISTS ks_entities"))
        conn.commit()
    store.close()
