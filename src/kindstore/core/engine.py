"""Main KindStore entry point."""

from __future__ import annotations

import logging

from kindstore.core.connection import DatabaseConnection
from kindstore.core.service import RecordService
from kindstore.core.types import ServiceOptions
from kindstore.storage.sql_store import SQLEntityStore

logger = logging.getLogger(__name__)


class KindStore:
    """Owns a database connection and hands out one record service per kind.

    Example:
        store = KindStore("sqlite:///./people.db")
        people = store.service("Person")
        people.create({"id": "Bob", "age": 44, "children": 2})
        print(people.find({"query": {"children": {"$lte": 4}}}))
    """

    def __init__(
        self,
        url: str,
        namespace: str | None = None,
        auto_index: bool = False,
        echo: bool = False,
    ) -> None:
        """Initialize KindStore.

        Args:
            url: Database connection URL
            namespace: Default namespace for services created from this store
            auto_index: Default auto-index setting for services
            echo: Whether to echo SQL statements (for debugging)
        """
        self._connection = DatabaseConnection(url, echo=echo)
        self._store = SQLEntityStore(self._connection)
        self._namespace = namespace
        self._auto_index = auto_index
        self._services: dict[tuple[str, str], RecordService] = {}

        self._store.ensure_tables()
        logger.info(f"KindStore ready on {self._connection.dialect}")

    @property
    def store(self) -> SQLEntityStore:
        """The underlying entity store."""
        return self._store

    def service(
        self,
        kind: str,
        id_field: str = "id",
        namespace: str | None = None,
        auto_index: bool | None = None,
    ) -> RecordService:
        """Get the record service for a kind.

        Services are cached per ``(kind, id_field)``; the namespace and
        auto-index settings of the first call win.

        Args:
            kind: Kind (collection) name
            id_field: Record property holding the id
            namespace: Default namespace (falls back to the store default)
            auto_index: Auto-index default (falls back to the store default)

        Returns:
            RecordService for the kind
        """
        cache_key = (kind, id_field)
        if cache_key not in self._services:
            options = ServiceOptions(
                kind=kind,
                id_field=id_field,
                namespace=namespace or self._namespace,
                auto_index=self._auto_index if auto_index is None else auto_index,
            )
            self._services[cache_key] = RecordService(self._store, options=options)
        return self._services[cache_key]

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()
        self._services.clear()

    def __enter__(self) -> KindStore:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

