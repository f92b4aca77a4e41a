"""Hierarchical keys and the rules for building them from identifiers.

A key is an ordered path of ``(kind, identifier)`` pairs, optionally scoped by
a namespace. The last pair names the record itself; every earlier pair names
an ancestor. The last identifier is the record's logical id.

Identifiers that look like integers are always stored as integers, so the ids
``"42"`` and ``42`` address the same record.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, unquote

Identifier = int | str

_INT_RE = re.compile(r"^[+-]?\d+$")
_SEGMENT_SEP = "/"


def coerce_identifier(value: Any) -> Identifier:
    """Normalize an identifier: integer-looking values become ``int``."""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value)
    if _INT_RE.match(text.strip()):
        return int(text)
    return text


@dataclass(frozen=True)
class Key:
    """Identifies one entity in the store.

    Attributes:
        path: ``(kind, identifier)`` pairs from the root ancestor to the entity.
            The last identifier is ``None`` while the key is incomplete.
        namespace: Optional tenant scope applied to the whole path.
    """

    path: tuple[tuple[str, Identifier | None], ...]
    namespace: str | None = field(default=None)

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("Key path must not be empty")
        for kind, identifier in self.path[:-1]:
            if identifier is None:
                raise ValueError(f"Ancestor '{kind}' in key path has no identifier")

    @property
    def kind(self) -> str:
        return self.path[-1][0]

    @property
    def id(self) -> Identifier | None:
        return self.path[-1][1]

    @property
    def is_complete(self) -> bool:
        return self.id is not None

    @property
    def parent(self) -> Key | None:
        """The key one level up the path, or None for a root key."""
        if len(self.path) == 1:
            return None
        return Key(self.path[:-1], self.namespace)

    @property
    def flat_path(self) -> list[Any]:
        """Path as ``[kind, id, kind, id, ...]``; an incomplete key ends in a kind."""
        flat: list[Any] = []
        for kind, identifier in self.path:
            flat.append(kind)
            if identifier is not None:
                flat.append(identifier)
        return flat

    def child(self, kind: str, identifier: Identifier | None = None) -> Key:
        return Key((*self.path, (kind, identifier)), self.namespace)

    def completed(self, identifier: Identifier) -> Key:
        """Return this key with its last identifier filled in."""
        return Key((*self.path[:-1], (self.kind, identifier)), self.namespace)

    def with_namespace(self, namespace: str | None) -> Key:
        return Key(self.path, namespace)

    def is_ancestor_of(self, other: Key) -> bool:
        """True if ``other`` sits strictly below this key in the same namespace."""
        size = len(self.path)
        return (
            (self.namespace or None) == (other.namespace or None)
            and len(other.path) > size
            and other.path[:size] == self.path
        )

    def to_path_string(self) -> str:
        """Encode a complete key path as a string whose prefixes are its ancestors.

        Each segment is ``kind:i<int>`` or ``kind:s<name>`` with reserved
        characters percent-escaped, so string-prefix matching on the encoded
        form is equivalent to ancestor matching.
        """
        if not self.is_complete:
            raise ValueError(f"Cannot encode incomplete key {self!r}")
        segments = []
        for kind, identifier in self.path:
            tag = "i" if isinstance(identifier, int) else "s"
            segments.append(f"{quote(kind, safe='')}:{tag}{quote(str(identifier), safe='')}")
        return _SEGMENT_SEP.join(segments)

    @classmethod
    def from_path_string(cls, encoded: str, namespace: str | None = None) -> Key:
        path: list[tuple[str, Identifier]] = []
        for segment in encoded.split(_SEGMENT_SEP):
            kind, _, rest = segment.partition(":")
            tag, raw = rest[:1], unquote(rest[1:])
            path.append((unquote(kind), int(raw) if tag == "i" else raw))
        return cls(tuple(path), namespace or None)

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.flat_path, "namespace": self.namespace}

    @classmethod
    def from_flat_path(cls, flat: Sequence[Any], namespace: str | None = None) -> Key:
        """Build a key from ``[kind, id, kind, id, ...]``.

        An odd-length path ends in a bare kind and gives an incomplete key.
        """
        if not flat:
            raise ValueError("Key path must not be empty")
        items = list(flat)
        path: list[tuple[str, Identifier | None]] = []
        for i in range(0, len(items), 2):
            kind = str(items[i])
            identifier = coerce_identifier(items[i + 1]) if i + 1 < len(items) else None
            path.append((kind, identifier))
        return cls(tuple(path), namespace or None)

    def __str__(self) -> str:
        prefix = f"{self.namespace}:" if self.namespace else ""
        return prefix + "/".join(str(part) for part in self.flat_path)


def is_composite_identifier(identifier: Any) -> bool:
    """True for identifiers that already describe a full path."""
    return isinstance(identifier, (Key, Mapping)) or (
        isinstance(identifier, Sequence) and not isinstance(identifier, (str, bytes))
    )


def make_key(
    identifier: Any,
    kind: str,
    namespace: str | None = None,
    parent: Key | None = None,
) -> Key:
    """Build the store key for an identifier.

    Args:
        identifier: Record id. A ``Key``, a flat ``[kind, id, ...]`` path or a
            ``{"path": [...], "namespace": ...}`` mapping is taken as a full
            path. ``None`` gives an incomplete key that the store completes
            on insert.
        kind: Kind used when the identifier is a plain id
        namespace: Namespace to scope the key with. When None, a composite
            identifier keeps its own namespace.
        parent: Ancestor to nest a plain id under

    Returns:
        The key
    """
    if isinstance(identifier, Key):
        key = identifier
    elif isinstance(identifier, Mapping):
        key = Key.from_flat_path(identifier["path"], identifier.get("namespace"))
    elif is_composite_identifier(identifier):
        key = Key.from_flat_path(identifier)
    else:
        resolved = None if identifier is None else coerce_identifier(identifier)
        if parent is not None:
            key = parent.child(kind, resolved)
        else:
            key = Key(((kind, resolved),))

    if namespace:
        key = key.with_namespace(namespace)
    return key
