"""The store client contract the record service is written against."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kindstore.core.keys import Key
from kindstore.core.types import EntityQuery, StoredEntity


@runtime_checkable
class EntityStore(Protocol):
    """Primitive operations of a hierarchical entity store.

    Every batch method handles its whole batch in one call. Implementations
    raise ``ConflictError`` from ``insert`` when a key already exists,
    ``NoEntityToUpdateError`` from ``update`` when a key does not, and
    ``IndexSizeExceededError`` when an indexed value is over the index limit.
    """

    def get(self, key: Key) -> StoredEntity | None:
        """Fetch one entity, or None if absent."""
        ...

    def get_many(self, keys: list[Key]) -> list[StoredEntity | None]:
        """Fetch several entities, positionally aligned with ``keys``."""
        ...

    def insert(self, entities: list[StoredEntity]) -> list[Key]:
        """Insert new entities, completing incomplete keys.

        Returns:
            The final keys, positionally aligned with ``entities``
        """
        ...

    def update(self, entities: list[StoredEntity]) -> None:
        """Replace existing entities; fails if any key is missing."""
        ...

    def upsert(self, entities: list[StoredEntity]) -> list[Key]:
        """Insert or replace entities, completing incomplete keys.

        Returns:
            The final keys, positionally aligned with ``entities``
        """
        ...

    def delete(self, keys: list[Key]) -> None:
        """Delete entities; missing keys are ignored."""
        ...

    def run_query(self, query: EntityQuery) -> list[StoredEntity]:
        """Return the entities matching a native query."""
        ...
