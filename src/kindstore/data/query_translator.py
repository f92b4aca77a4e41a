"""Translation of generic filter queries into native store queries.

A filter query maps field names to a plain value (equality), ``None``
(equality to null) or an operator mapping such as ``{"$gte": 18, "$lt": 65}``.
A few reserved keys steer the query instead of filtering:

- ``kind``: collection to query (defaults to the service kind)
- ``namespace``: tenant scope (defaults to the service namespace)
- ``ancestor``: only return descendants of this record
- ``$select``: fields to keep in each result (the id is always kept)

The store has no disjunction, negation or membership operators, so ``$ne``,
``$in``, ``$nin``, ``$or`` and friends raise ``UnsupportedFilterError``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from kindstore.core.keys import Key, make_key
from kindstore.core.types import EntityQuery, FilterOperator, PropertyFilter, TranslatedQuery
from kindstore.exceptions import UnsupportedFilterError

# Inbound operator -> native operator
OPERATORS: dict[str, FilterOperator] = {
    "$gt": FilterOperator.GT,
    "$gte": FilterOperator.GTE,
    "$lt": FilterOperator.LT,
    "$lte": FilterOperator.LTE,
    "=": FilterOperator.EQ,
}

# Query keys that configure the query rather than filter it
RESERVED_KEYS = ("kind", "namespace", "ancestor", "$select")

# Write options that travel in the same query mapping
WRITE_OPTION_KEYS = ("dontIndex", "autoIndex", "create")

_INT_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class Equals:
    value: Any


@dataclass(frozen=True)
class IsNull:
    pass


@dataclass(frozen=True)
class Compare:
    op: FilterOperator
    value: Any


FilterValue = Equals | IsNull | Compare


def coerce_number(value: Any) -> Any:
    """Turn strings that are fully decimal numbers into int or float."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _INT_RE.match(text):
        return int(text)
    if _DECIMAL_RE.match(text):
        return float(text)
    return value


def parse_filter_value(field: str, value: Any) -> list[FilterValue]:
    """Normalize one field's filter into tagged variants.

    Raises:
        UnsupportedFilterError: If an operator mapping uses an unknown operator
    """
    if value is None:
        return [IsNull()]
    if isinstance(value, Key) or not isinstance(value, Mapping):
        return [Equals(value)]

    parsed: list[FilterValue] = []
    for op, operand in value.items():
        if op not in OPERATORS:
            raise UnsupportedFilterError(field, str(op))
        native = OPERATORS[op]
        if native is FilterOperator.EQ:
            parsed.append(IsNull() if operand is None else Equals(operand))
        else:
            parsed.append(Compare(native, operand))
    return parsed


def to_property_filter(field: str, value: FilterValue) -> PropertyFilter:
    if isinstance(value, IsNull):
        return PropertyFilter(field=field, op=FilterOperator.EQ, value=None)
    if isinstance(value, Equals):
        return PropertyFilter(field=field, op=FilterOperator.EQ, value=coerce_number(value.value))
    return PropertyFilter(field=field, op=value.op, value=coerce_number(value.value))


def translate(
    query: Mapping[str, Any] | None,
    kind: str,
    namespace: str | None = None,
    id_field: str = "id",
) -> TranslatedQuery:
    """Translate a filter query into a native query plus post-processing.

    Args:
        query: Filter query (may be None or empty)
        kind: Default kind when the query names none. A plain-id ancestor
            always belongs to this kind, even when the query names another
        namespace: Default namespace when the query names none
        id_field: Record id property, always kept by ``$select``

    Returns:
        TranslatedQuery with the native query and projection

    Raises:
        UnsupportedFilterError: For unknown operators or top-level ``$`` keys
    """
    remaining = dict(query or {})

    ancestor = remaining.pop("ancestor", None)
    namespace = remaining.pop("namespace", None) or namespace
    target_kind = remaining.pop("kind", None) or kind
    select = remaining.pop("$select", None)
    for option in WRITE_OPTION_KEYS:
        remaining.pop(option, None)

    projection = None
    if select is not None:
        if isinstance(select, str):
            select = [select]
        projection = [id_field, *[name for name in select if name != id_field]]

    ancestor_key = None
    if ancestor is not None:
        ancestor_key = make_key(ancestor, kind, namespace)

    filters: list[PropertyFilter] = []
    for field, value in remaining.items():
        if field.startswith("$"):
            raise UnsupportedFilterError(field, field)
        filters.extend(to_property_filter(field, v) for v in parse_filter_value(field, value))

    return TranslatedQuery(
        query=EntityQuery(
            kind=target_kind, namespace=namespace, ancestor=ancestor_key, filters=filters
        ),
        projection=projection,
    )
