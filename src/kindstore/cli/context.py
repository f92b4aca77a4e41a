"""CLI context management for database connections and shared state."""

import os
from dataclasses import dataclass, field

from kindstore import KindStore, RecordService

DEFAULT_DATABASE_URL = "sqlite:///./kindstore.db"


def get_database_url(url: str | None) -> str:
    """Resolve database URL from CLI arg, environment variable, or default.

    Priority:
    1. Explicit URL argument
    2. KINDSTORE_URL environment variable
    3. Default: sqlite:///./kindstore.db
    """
    if url:
        return url
    if env_url := os.getenv("KINDSTORE_URL"):
        return env_url
    return DEFAULT_DATABASE_URL


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Manages the store lifecycle and output preferences.
    """

    database_url: str
    json_output: bool
    echo: bool = False
    namespace: str | None = None
    id_field: str = "id"
    auto_index: bool = False
    _store: KindStore | None = field(default=None, init=False, repr=False)

    def get_store(self) -> KindStore:
        """Get or create the store (lazy initialization)."""
        if self._store is None:
            self._store = KindStore(
                self.database_url,
                namespace=self.namespace,
                auto_index=self.auto_index,
                echo=self.echo,
            )
        return self._store

    def service(self, kind: str) -> RecordService:
        """Get the record service for a kind."""
        return self.get_store().service(kind, id_field=self.id_field)

    def close(self) -> None:
        """Close the store if open."""
        if self._store is not None:
            self._store.close()
            self._store = None
