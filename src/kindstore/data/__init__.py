"""Codecs between records, queries and the store's native shapes."""

from kindstore.data.entity_codec import MAX_INDEX_SIZE, expand, flatten, is_big
from kindstore.data.query_translator import Compare, Equals, IsNull, translate
from kindstore.data.store import EntityStore

__all__ = [
    "MAX_INDEX_SIZE",
    "expand",
    "flatten",
    "is_big",
    "translate",
    "Equals",
    "IsNull",
    "Compare",
    "EntityStore",
]
