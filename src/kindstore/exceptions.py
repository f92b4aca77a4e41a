"""Custom exceptions for kindstore.

Every error carries an actionable message, a context dict and an HTTP-like
``code`` so a transport layer can map it straight to a response status.
"""

from __future__ import annotations

from typing import Any


class KindStoreError(Exception):
    """Base exception for all kindstore errors."""

    code = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ConnectionError(KindStoreError):
    """Failed to connect to the database."""

    pass


class StoreError(KindStoreError):
    """The underlying store failed for a reason with no more specific error."""

    pass


class RecordNotFoundError(KindStoreError):
    """Record with given ID does not exist."""

    code = 404

    def __init__(self, record_id: Any, kind: str | None = None) -> None:
        message = f"No record found for id '{record_id}'"
        if kind:
            message = f"{message} in '{kind}'"
        super().__init__(message, {"record_id": record_id, "kind": kind})
        self.record_id = record_id
        self.kind = kind


class ConflictError(KindStoreError):
    """An insert targeted a key that already holds an entity."""

    code = 409

    def __init__(self, keys: list[str]) -> None:
        message = (
            f"Entity already exists for key(s): {', '.join(keys)}. "
            "Use update with create=True to overwrite."
        )
        super().__init__(message, {"keys": keys})
        self.keys = keys


class NoEntityToUpdateError(KindStoreError):
    """A strict update targeted a key with no entity behind it."""

    code = 400

    def __init__(self, keys: list[str]) -> None:
        super().__init__("no entity to update", {"keys": keys})
        self.keys = keys


class IndexSizeExceededError(KindStoreError):
    """An indexed property value is larger than the store's index limit."""

    code = 400

    def __init__(self, property_name: str, size: int, limit: int) -> None:
        message = (
            f"Property '{property_name}' is {size} bytes, over the {limit}-byte limit "
            "for indexed values. Pass it in dontIndex or enable autoIndex."
        )
        super().__init__(message, {"property": property_name, "size": size, "limit": limit})
        self.property_name = property_name
        self.size = size
        self.limit = limit


class UnsupportedFilterError(KindStoreError):
    """A query used an operator the store cannot evaluate."""

    code = 400

    SUPPORTED_OPERATORS = ["$gt", "$gte", "$lt", "$lte", "="]

    def __init__(self, field: str, operator: str) -> None:
        message = (
            f"Unsupported filter operator '{operator}' on '{field}'. "
            f"Supported: {', '.join(self.SUPPORTED_OPERATORS)} or a plain value for equality"
        )
        super().__init__(
            message,
            {"field": field, "operator": operator, "supported": self.SUPPORTED_OPERATORS},
        )
        self.field = field
        self.operator = operator
