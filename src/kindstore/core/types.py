"""Core types shared by the codecs, the service and the store."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from kindstore.core.keys import Key


class FilterOperator(StrEnum):
    """Comparison operators understood by the store."""

    EQ = "="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid operator values."""
        return [op.value for op in cls]


class Property(BaseModel):
    """One named value on a stored entity."""

    name: str
    value: Any = None
    exclude_from_indexes: bool = False


class StoredEntity(BaseModel):
    """The store-native unit: a key plus an explicit property list."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: Key
    properties: list[Property] = Field(default_factory=list)

    def get(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def values(self) -> dict[str, Any]:
        return {prop.name: prop.value for prop in self.properties}


class PropertyFilter(BaseModel):
    """A single ``(field, operator, value)`` comparison."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    field: str
    op: FilterOperator = FilterOperator.EQ
    value: Any = None

    def as_tuple(self) -> tuple[str, str, Any]:
        return (self.field, self.op.value, self.value)


class EntityQuery(BaseModel):
    """A native query: kind, namespace, optional ancestor scope and filters."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: str
    namespace: str | None = None
    ancestor: Key | None = None
    filters: list[PropertyFilter] = Field(default_factory=list)


class TranslatedQuery(BaseModel):
    """Output of the query translator.

    ``query`` goes to the store; ``projection`` is applied to the flattened
    results.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    query: EntityQuery
    projection: list[str] | None = None


class ServiceOptions(BaseModel):
    """Configuration for one record service, fixed at construction."""

    kind: str = Field(..., min_length=1, description="Kind (collection) the service manages")
    id_field: str = Field(default="id", min_length=1, description="Record property holding the id")
    namespace: str | None = Field(default=None, description="Default namespace for all keys")
    auto_index: bool = Field(
        default=False, description="Exclude oversized values from indexes automatically"
    )
