"""Hierarchical entity store on top of SQLAlchemy.

Behaves like a schemaless, key-addressed entity store:

- keys are ancestor paths, optionally scoped by a namespace
- incomplete keys get a numeric id on insert
- filters only see properties that are indexed; excluded properties are
  stored but cannot be queried
- indexed string or binary values over 1500 bytes are rejected
- has-ancestor queries return the ancestor itself along with its descendants
- every batch call runs in a single database transaction

Kind, namespace and ancestor scoping happen in SQL. Property filters are
evaluated on the decoded entities, with a fixed ordering between value types.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kindstore.core.keys import Key
from kindstore.core.types import EntityQuery, FilterOperator, Property, PropertyFilter, StoredEntity
from kindstore.data.entity_codec import MAX_INDEX_SIZE, largest_leaf_size
from kindstore.exceptions import (
    ConflictError,
    IndexSizeExceededError,
    KindStoreError,
    NoEntityToUpdateError,
    StoreError,
)
from kindstore.storage.models import Base, EntityRow, utc_now

if TYPE_CHECKING:
    from kindstore.core.connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Tags for property values JSON cannot hold natively
_BYTES_TAG = "__bytes__"
_KEY_TAG = "__key__"
_DATETIME_TAG = "__datetime__"
_MAP_TAG = "__map__"
_TAGS = {_BYTES_TAG, _KEY_TAG, _DATETIME_TAG, _MAP_TAG}

# Sort order between value types, lowest first
_TYPE_RANKS: list[tuple[type | tuple[type, ...], int]] = [
    (type(None), 0),
    (bool, 1),
    ((int, float), 2),
    (datetime, 3),
    (str, 4),
    (bytes, 5),
    (Key, 6),
]
_UNORDERED_RANK = 7


def generate_id() -> int:
    """Generate a new positive 52-bit numeric id."""
    return (uuid4().int & ((1 << 52) - 1)) or 1


def encode_value(value: Any) -> Any:
    """Encode a property value into JSON-compatible data."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {_BYTES_TAG: base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, Key):
        return {_KEY_TAG: value.to_dict()}
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, Mapping):
        encoded = {str(k): encode_value(v) for k, v in value.items()}
        if len(encoded) == 1 and next(iter(encoded)) in _TAGS:
            return {_MAP_TAG: encoded}
        return encoded
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    raise StoreError(
        f"Cannot store value of type {type(value).__name__}",
        {"type": type(value).__name__},
    )


def decode_value(value: Any) -> Any:
    """Decode JSON data written by ``encode_value``."""
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    if not isinstance(value, dict):
        return value
    if len(value) == 1:
        tag, payload = next(iter(value.items()))
        if tag == _BYTES_TAG:
            return base64.b64decode(payload)
        if tag == _KEY_TAG:
            return Key.from_flat_path(payload["path"], payload.get("namespace"))
        if tag == _DATETIME_TAG:
            return datetime.fromisoformat(payload)
        if tag == _MAP_TAG:
            return {k: decode_value(v) for k, v in payload.items()}
    return {k: decode_value(v) for k, v in value.items()}


def _rank(value: Any) -> int:
    if isinstance(value, Key) and not value.is_complete:
        # Incomplete keys have no encoded path to order by
        return _UNORDERED_RANK
    for types, rank in _TYPE_RANKS:
        if isinstance(value, types):
            return rank
    return _UNORDERED_RANK


def _sort_value(value: Any) -> Any:
    if isinstance(value, Key):
        return (value.namespace or "", value.to_path_string())
    return value


def value_matches(candidate: Any, op: FilterOperator, target: Any) -> bool:
    """Evaluate one comparison between a stored value and a filter value.

    Values of different types are never equal. Inequalities only hold between
    values of the same orderable type.
    """
    rank = _rank(candidate)
    if rank != _rank(target):
        return False
    if op is FilterOperator.EQ:
        return candidate == target
    if rank == _UNORDERED_RANK:
        return False

    left, right = _sort_value(candidate), _sort_value(target)
    try:
        if op is FilterOperator.GT:
            return left > right
        if op is FilterOperator.GTE:
            return left >= right
        if op is FilterOperator.LT:
            return left < right
        return left <= right
    except TypeError:
        # e.g. naive vs aware datetimes
        return False


def entity_matches(entity: StoredEntity, prop_filter: PropertyFilter) -> bool:
    """Check a filter against an entity's indexed properties.

    A list property matches when any of its elements matches.
    """
    prop = entity.get(prop_filter.field)
    if prop is None or prop.exclude_from_indexes:
        return False
    candidates = prop.value if isinstance(prop.value, list) else [prop.value]
    return any(value_matches(c, prop_filter.op, prop_filter.value) for c in candidates)


class SQLEntityStore:
    """Entity store persisting to the ``ks_entities`` table."""

    def __init__(
        self, connection: DatabaseConnection, max_index_size: int = MAX_INDEX_SIZE
    ) -> None:
        """Initialize the store.

        Args:
            connection: Database connection that hands out sessions
            max_index_size: Largest value, in bytes, allowed in an indexed property
        """
        self._connection = connection
        self._max_index_size = max_index_size
        self._initialized = False

    def ensure_tables(self) -> None:
        """Create the entity table if it doesn't exist. Idempotent."""
        if self._initialized:
            return
        Base.metadata.create_all(self._connection.engine, tables=[EntityRow.__table__])  # type: ignore[list-item]
        self._initialized = True
        logger.debug("Entity table ready")

    def _get_session(self) -> Session:
        """Get a new database session."""
        return self._connection.get_session()

    # === Row conversion ===

    def _check_index_sizes(self, entity: StoredEntity) -> None:
        for prop in entity.properties:
            if prop.exclude_from_indexes:
                continue
            size = largest_leaf_size(prop.value)
            if size > self._max_index_size:
                raise IndexSizeExceededError(prop.name, size, self._max_index_size)

    def _encode_properties(self, entity: StoredEntity) -> list[dict[str, Any]]:
        names = [prop.name for prop in entity.properties]
        if len(names) != len(set(names)):
            raise StoreError(f"Duplicate property names on {entity.key}", {"names": names})
        return [
            {
                "name": prop.name,
                "value": encode_value(prop.value),
                "exclude_from_indexes": prop.exclude_from_indexes,
            }
            for prop in entity.properties
        ]

    def _row_to_entity(self, row: EntityRow) -> StoredEntity:
        return StoredEntity(
            key=Key.from_path_string(row.path, row.namespace),
            properties=[
                Property(
                    name=item["name"],
                    value=decode_value(item["value"]),
                    exclude_from_indexes=bool(item.get("exclude_from_indexes", False)),
                )
                for item in row.properties or []
            ],
        )

    def _new_row(self, entity: StoredEntity) -> EntityRow:
        return EntityRow(
            namespace=entity.key.namespace or "",
            kind=entity.key.kind,
            path=entity.key.to_path_string(),
            properties=self._encode_properties(entity),
        )

    def _fetch_rows(self, session: Session, keys: list[Key]) -> dict[Key, EntityRow]:
        rows: dict[Key, EntityRow] = {}
        by_namespace: dict[str, list[str]] = {}
        for key in keys:
            if key.is_complete:
                by_namespace.setdefault(key.namespace or "", []).append(key.to_path_string())
        for namespace, paths in by_namespace.items():
            stmt = select(EntityRow).where(
                EntityRow.namespace == namespace, EntityRow.path.in_(paths)
            )
            for row in session.scalars(stmt):
                rows[Key.from_path_string(row.path, row.namespace)] = row
        return rows

    def _normalize(self, key: Key) -> Key:
        return key.with_namespace(key.namespace or None)

    # === Reads ===

    def get(self, key: Key) -> StoredEntity | None:
        return self.get_many([key])[0]

    def get_many(self, keys: list[Key]) -> list[StoredEntity | None]:
        try:
            with self._get_session() as session:
                rows = self._fetch_rows(session, keys)
                return [
                    self._row_to_entity(rows[self._normalize(key)])
                    if self._normalize(key) in rows
                    else None
                    for key in keys
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch entities: {e}") from e

    def run_query(self, query: EntityQuery) -> list[StoredEntity]:
        stmt = select(EntityRow).where(
            EntityRow.namespace == (query.namespace or ""),
            EntityRow.kind == query.kind,
        )
        if query.ancestor is not None:
            prefix = query.ancestor.to_path_string()
            stmt = stmt.where(
                or_(
                    EntityRow.path == prefix,
                    EntityRow.path.startswith(prefix + "/", autoescape=True),
                )
            )
        stmt = stmt.order_by(EntityRow.row_id)

        try:
            with self._get_session() as session:
                entities = [self._row_to_entity(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to execute query: {e}") from e

        results = [e for e in entities if all(entity_matches(e, f) for f in query.filters)]
        logger.debug(
            f"Query on '{query.kind}' matched {len(results)} of {len(entities)} entities"
        )
        return results

    # === Writes ===

    def insert(self, entities: list[StoredEntity]) -> list[Key]:
        keys = [e.key if e.key.is_complete else e.key.completed(generate_id()) for e in entities]
        entities = [e.model_copy(update={"key": key}) for e, key in zip(entities, keys)]
        for entity in entities:
            self._check_index_sizes(entity)

        paths = [str(key) for key in keys]
        if len(set(keys)) != len(keys):
            raise ConflictError(sorted({p for p in paths if paths.count(p) > 1}))

        try:
            with self._get_session() as session:
                existing = self._fetch_rows(session, keys)
                if existing:
                    raise ConflictError([str(key) for key in existing])
                session.add_all([self._new_row(entity) for entity in entities])
                session.commit()
        except IntegrityError as e:
            raise ConflictError(paths) from e
        except KindStoreError:
            raise
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert entities: {e}") from e

        logger.debug(f"Inserted {len(keys)} entities")
        return keys

    def update(self, entities: list[StoredEntity]) -> None:
        self._write(entities, create_missing=False)

    def upsert(self, entities: list[StoredEntity]) -> list[Key]:
        return self._write(entities, create_missing=True)

    def _write(self, entities: list[StoredEntity], create_missing: bool) -> list[Key]:
        if not create_missing:
            incomplete = [str(e.key) for e in entities if not e.key.is_complete]
            if incomplete:
                raise NoEntityToUpdateError(incomplete)
        entities = [
            e if e.key.is_complete else e.model_copy(update={"key": e.key.completed(generate_id())})
            for e in entities
        ]
        for entity in entities:
            self._check_index_sizes(entity)

        try:
            with self._get_session() as session:
                rows = self._fetch_rows(session, [e.key for e in entities])
                missing = [e.key for e in entities if self._normalize(e.key) not in rows]
                if missing and not create_missing:
                    raise NoEntityToUpdateError([str(key) for key in missing])

                for entity in entities:
                    row = rows.get(self._normalize(entity.key))
                    if row is None:
                        row = self._new_row(entity)
                        session.add(row)
                        rows[self._normalize(entity.key)] = row
                    else:
                        row.properties = self._encode_properties(entity)
                        row.updated_at = utc_now()
                session.commit()
        except KindStoreError:
            raise
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to write entities: {e}") from e

        logger.debug(f"Wrote {len(entities)} entities (create_missing={create_missing})")
        return [e.key for e in entities]

    def delete(self, keys: list[Key]) -> None:
        try:
            with self._get_session() as session:
                rows = self._fetch_rows(session, keys)
                for row in rows.values():
                    session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete entities: {e}") from e

        logger.debug(f"Deleted {len(rows)} of {len(keys)} entities")
