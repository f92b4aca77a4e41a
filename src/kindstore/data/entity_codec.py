"""Conversion between flat records and explicit stored entities.

Records are plain dicts. Stored entities carry an explicit property list where
each property can be excluded from the store's indexes. The id never lives in
the property list; it is the last identifier of the key.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, overload

from kindstore.core.keys import Key
from kindstore.core.types import Property, StoredEntity

# Largest value, in bytes, the store accepts in an indexed property
MAX_INDEX_SIZE = 1500


def largest_leaf_size(value: Any) -> int:
    """Byte length of the largest string or binary leaf inside a value.

    Strings count their UTF-8 bytes, binary values their length. Mappings,
    lists and keys recurse into their leaves. Numbers, booleans and None
    count as zero.
    """
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    if isinstance(value, Mapping):
        return max((largest_leaf_size(v) for v in value.values()), default=0)
    if isinstance(value, Key):
        return max(largest_leaf_size(part) for part in value.flat_path)
    if isinstance(value, (list, tuple, set, frozenset)):
        return max((largest_leaf_size(v) for v in value), default=0)
    return 0


def is_big(value: Any, limit: int = MAX_INDEX_SIZE) -> bool:
    """Check whether a value is too large to be indexed."""
    return largest_leaf_size(value) > limit


def flatten_one(entity: StoredEntity | None, id_field: str = "id") -> dict[str, Any] | None:
    if entity is None:
        return None
    record = entity.values()
    record[id_field] = entity.key.id
    return record


@overload
def flatten(entity: StoredEntity | None, id_field: str = ...) -> dict[str, Any] | None: ...


@overload
def flatten(entity: list[StoredEntity], id_field: str = ...) -> list[dict[str, Any]]: ...


def flatten(entity: Any, id_field: str = "id") -> Any:
    """Turn stored entities into plain records.

    Args:
        entity: A stored entity, a list of them, or None
        id_field: Record property that receives the key's last identifier

    Returns:
        A record, a list of records in the same order, or None
    """
    if isinstance(entity, list):
        return [flatten_one(e, id_field) for e in entity]
    return flatten_one(entity, id_field)


def expand_properties(
    record: Mapping[str, Any],
    id_field: str = "id",
    dont_index: Iterable[str] = (),
    auto_index: bool = False,
) -> list[Property]:
    """Build the explicit property list for one record.

    A property is excluded from indexes when its name is in ``dont_index``,
    or, with ``auto_index`` on, when its value is too big to index.
    """
    excluded = set(dont_index)
    properties = []
    for name, value in record.items():
        if name == id_field:
            continue
        if name in excluded:
            exclude = True
        elif auto_index:
            exclude = is_big(value)
        else:
            exclude = False
        properties.append(Property(name=name, value=value, exclude_from_indexes=exclude))
    return properties


@overload
def expand(
    items: tuple[Key, Mapping[str, Any]],
    id_field: str = ...,
    dont_index: Iterable[str] = ...,
    auto_index: bool = ...,
) -> StoredEntity: ...


@overload
def expand(
    items: list[tuple[Key, Mapping[str, Any]]],
    id_field: str = ...,
    dont_index: Iterable[str] = ...,
    auto_index: bool = ...,
) -> list[StoredEntity]: ...


def expand(
    items: Any,
    id_field: str = "id",
    dont_index: Iterable[str] = (),
    auto_index: bool = False,
) -> Any:
    """Turn ``(key, record)`` pairs into stored entities.

    Args:
        items: One ``(key, record)`` pair or a list of them
        id_field: Record property that holds the id and is never stored
        dont_index: Property names always excluded from indexes
        auto_index: Exclude values too big to index

    Returns:
        A stored entity, or a list of them in the same order
    """
    dont_index = list(dont_index)
    if isinstance(items, list):
        return [expand(item, id_field, dont_index, auto_index) for item in items]

    key, record = items
    return StoredEntity(
        key=key,
        properties=expand_properties(record, id_field, dont_index, auto_index),
    )
