"""SQL-backed entity store."""

from kindstore.storage.sql_store import SQLEntityStore

__all__ = ["SQLEntityStore"]
