"""Tests for database connection."""

import pytest

from kindstore import KindStore, SQLEntityStore
from kindstore.core.connection import DatabaseConnection, normalize_url
from kindstore.core.keys import Key
from kindstore.core.types import StoredEntity
from kindstore.exceptions import ConnectionError


class TestNormalizeUrl:
    def test_postgresql_uses_psycopg(self):
        assert normalize_url("postgresql://u@h/db") == "postgresql+psycopg://u@h/db"

    def test_other_urls_unchanged(self):
        assert normalize_url("postgresql+psycopg2://u@h/db") == "postgresql+psycopg2://u@h/db"
        assert normalize_url("sqlite:///:memory:") == "sqlite:///:memory:"


class TestDatabaseConnection:
    """Tests for DatabaseConnection class."""

    def test_sqlite_memory(self):
        conn = DatabaseConnection("sqlite:///:memory:")
        assert conn.test_connection() is True
        assert conn.dialect == "sqlite"
        conn.close()

    def test_engine_created_lazily(self):
        conn = DatabaseConnection("sqlite:///:memory:")
        assert conn._engine is None
        _ = conn.engine
        assert conn._engine is not None
        conn.close()
        assert conn._engine is None

    def test_session_factory(self):
        conn = DatabaseConnection("sqlite:///:memory:")
        session = conn.get_session()
        assert session is not None
        session.close()
        conn.close()

    def test_context_manager(self):
        with DatabaseConnection("sqlite:///:memory:") as conn:
            assert conn.test_connection() is True

    def test_invalid_url(self):
        conn = DatabaseConnection("not-a-url")
        with pytest.raises(ConnectionError):
            _ = conn.engine

    def test_postgresql_connection(self, postgresql_url: str):
        conn = DatabaseConnection(postgresql_url)
        assert conn.test_connection() is True
        assert conn.dialect == "postgresql"
        conn.close()

    def test_store_uses_connection_sessions(self):
        with DatabaseConnection("sqlite:///:memory:") as conn:
            store = SQLEntityStore(conn)
            store.ensure_tables()
            key = Key((("Person", "Bob"),))
            store.insert([StoredEntity(key=key)])
            with conn.get_session() as session:
                assert session.bind is conn.engine
            assert store.get(key) is not None


class TestKindStore:
    def test_file_database_persists(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'people.db'}"
        with KindStore(url) as store:
            store.service("Person").create({"id": "Bob", "age": 44})
        with KindStore(url) as store:
            assert store.service("Person").get("Bob") == {"id": "Bob", "age": 44}

    def test_default_namespace(self):
        with KindStore("sqlite:///:memory:", namespace="tenant") as store:
            people = store.service("Person")
            people.create({"id": "Bob"})
            assert people.make_key("Bob").namespace == "tenant"
            assert store.store.get(people.make_key("Bob")) is not None

    def test_postgresql_round_trip(self, pg_store: KindStore):
        people = pg_store.service("Person")
        people.create({"id": "Bob", "age": 44, "tags": ["a", "b"]})
        assert people.find({"query": {"tags": "b"}}) == [{"id": "Bob", "age": 44, "tags": ["a", "b"]}]
