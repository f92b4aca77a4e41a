"""kindstore - uniform CRUD over a hierarchical, schemaless entity store.

Records are flat dicts. Underneath, each one is an entity addressed by a key
path (optionally nested under ancestors and scoped by a namespace) with an
explicit property list where every property can be excluded from indexes.

Example:
    from kindstore import KindStore

    store = KindStore("sqlite:///./people.db")
    people = store.service("Person")

    people.create({"id": "Bob", "age": 44, "children": 2}, {"query": {"dontIndex": ["age"]}})
    people.find({"query": {"children": {"$lte": 4}}})   # -> [Bob]
    people.find({"query": {"age": {"$lte": 50}}})       # -> [] (age is not indexed)

    people.patch("Bob", {"children": 3})
    people.update("Alice", {"age": 31}, {"query": {"create": True}})  # upsert
"""

from kindstore.core.engine import KindStore
from kindstore.core.keys import Key, make_key
from kindstore.core.service import HookContext, RecordOperations, RecordService
from kindstore.core.types import ServiceOptions, StoredEntity
from kindstore.data.store import EntityStore
from kindstore.exceptions import (
    ConflictError,
    ConnectionError,
    IndexSizeExceededError,
    KindStoreError,
    NoEntityToUpdateError,
    RecordNotFoundError,
    StoreError,
    UnsupportedFilterError,
)
from kindstore.storage.sql_store import SQLEntityStore

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "KindStore",
    "RecordService",
    "RecordOperations",
    "HookContext",
    "SQLEntityStore",
    "EntityStore",
    # Types
    "Key",
    "make_key",
    "ServiceOptions",
    "StoredEntity",
    # Exceptions
    "KindStoreError",
    "ConnectionError",
    "StoreError",
    "RecordNotFoundError",
    "ConflictError",
    "NoEntityToUpdateError",
    "IndexSizeExceededError",
    "UnsupportedFilterError",
]
