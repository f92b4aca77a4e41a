"""Core components for kindstore."""

from kindstore.core.connection import DatabaseConnection
from kindstore.core.keys import Key, coerce_identifier, make_key
from kindstore.core.types import (
    EntityQuery,
    FilterOperator,
    Property,
    PropertyFilter,
    ServiceOptions,
    StoredEntity,
    TranslatedQuery,
)

__all__ = [
    "DatabaseConnection",
    "Key",
    "make_key",
    "coerce_identifier",
    "FilterOperator",
    "Property",
    "StoredEntity",
    "PropertyFilter",
    "EntityQuery",
    "TranslatedQuery",
    "ServiceOptions",
]
