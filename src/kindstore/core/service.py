"""Record service: uniform CRUD over a hierarchical entity store.

Two surfaces are exposed:

- ``RecordOperations`` runs the operations directly. Patch and remove use it
  for their read phase, so a service's own hooks never fire for internal
  reads.
- ``RecordService`` is the public surface. Each call runs the registered
  before/after/error hooks around the matching direct operation. The direct
  surface stays reachable as ``service.direct``.

Patch and remove are read-modify-write: the read and the write are separate
store calls with nothing locking the records in between. A concurrent writer
can change or delete a record inside that window, and the last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from kindstore.core.keys import Key, make_key
from kindstore.core.types import ServiceOptions, StoredEntity
from kindstore.data import entity_codec
from kindstore.data.query_translator import translate
from kindstore.data.store import EntityStore
from kindstore.exceptions import NoEntityToUpdateError, RecordNotFoundError

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | None
Record = dict[str, Any]

METHODS = ("find", "get", "create", "update", "patch", "remove")

_TRUE_STRINGS = {"true", "1", "yes", "on"}


def _query_of(params: Params) -> Mapping[str, Any]:
    return (params or {}).get("query") or {}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def project(record: Record | None, fields: list[str] | None) -> Record | None:
    """Keep only ``fields`` of a record (missing fields are skipped)."""
    if record is None or fields is None:
        return record
    return {name: record[name] for name in fields if name in record}


class RecordOperations:
    """Direct CRUD operations for one kind.

    Stateless apart from its configuration: every call builds fresh keys and
    entities, and the store is the only source of truth.
    """

    def __init__(self, store: EntityStore, options: ServiceOptions) -> None:
        """Initialize operations.

        Args:
            store: Entity store client
            options: Kind, id field, default namespace and auto-index default
        """
        self.store = store
        self.options = options

    @property
    def kind(self) -> str:
        return self.options.kind

    @property
    def id_field(self) -> str:
        return self.options.id_field

    # === Keys ===

    def make_key(self, identifier: Any = None, params: Params = None) -> Key:
        """Build the key for an identifier under this service's configuration.

        The namespace comes from ``query.namespace``, then the service
        default. With ``query.ancestor`` set, a plain id is nested under the
        ancestor's key. A plain-id ancestor always has the service kind, so
        ``query.kind`` only applies to the record's own segment.

        Args:
            identifier: Record id, full key path, or None for an incomplete key
            params: Call parameters

        Returns:
            The key
        """
        query = _query_of(params)
        kind = query.get("kind") or self.kind
        namespace = query.get("namespace") or self.options.namespace
        parent = None
        if query.get("ancestor") is not None:
            parent = make_key(query["ancestor"], self.kind, namespace)
        return make_key(identifier, kind, namespace, parent=parent)

    # === Internal helpers ===

    def _write_options(self, params: Params) -> tuple[list[str], bool]:
        query = _query_of(params)
        auto_index = query.get("autoIndex")
        return (
            _as_list(query.get("dontIndex")),
            self.options.auto_index if auto_index is None else _as_bool(auto_index),
        )

    def _selected(self, params: Params) -> list[str] | None:
        fields = _query_of(params).get("$select")
        if fields is None:
            return None
        return [self.id_field, *[f for f in _as_list(fields) if f != self.id_field]]

    def _expand(
        self, items: list[tuple[Key, Mapping[str, Any]]], params: Params
    ) -> list[StoredEntity]:
        dont_index, auto_index = self._write_options(params)
        return entity_codec.expand(
            items, id_field=self.id_field, dont_index=dont_index, auto_index=auto_index
        )

    def _get_pair(self, identifier: Any, params: Params) -> tuple[Key, Record]:
        key = self.make_key(identifier, params)
        record = entity_codec.flatten(self.store.get(key), self.id_field)
        if record is None:
            raise RecordNotFoundError(identifier, key.kind)
        return key, record

    def _find_pairs(self, params: Params) -> tuple[list[tuple[Key, Record]], list[str] | None]:
        translated = translate(
            _query_of(params),
            kind=self.kind,
            namespace=self.options.namespace,
            id_field=self.id_field,
        )
        entities = self.store.run_query(translated.query)

        ancestor = translated.query.ancestor
        if ancestor is not None:
            # Has-ancestor queries also match the ancestor itself
            entities = [e for e in entities if e.key != ancestor]

        pairs = [(e.key, entity_codec.flatten(e, self.id_field)) for e in entities]
        return pairs, translated.projection

    def _read_phase(
        self, identifier: Any, params: Params
    ) -> tuple[list[tuple[Key, Record]], list[str] | None]:
        if identifier is not None:
            return [self._get_pair(identifier, params)], self._selected(params)
        return self._find_pairs(params)

    # === Operations ===

    def find(self, params: Params = None) -> list[Record]:
        """Find records matching the query filters.

        Raises:
            UnsupportedFilterError: If the query uses an unsupported operator
        """
        pairs, projection = self._find_pairs(params)
        return [project(record, projection) for _, record in pairs]  # type: ignore[misc]

    def get(self, identifier: Any, params: Params = None) -> Record:
        """Get one record by id.

        Raises:
            RecordNotFoundError: If no record exists for the id
        """
        _, record = self._get_pair(identifier, params)
        return project(record, self._selected(params))  # type: ignore[return-value]

    def create(self, data: Record | list[Record], params: Params = None) -> Any:
        """Insert one record or a list of records in a single store call.

        Records without an id get one assigned by the store.

        Returns:
            The created record(s), same shape as ``data``, ids populated

        Raises:
            ConflictError: If a record with the same key already exists
            IndexSizeExceededError: If an indexed value is too big
        """
        was_list = isinstance(data, list)
        items: list[Record] = data if was_list else [data]  # type: ignore[assignment]
        if not items:
            return []

        keys = [
            self.make_key(item[self.id_field] if self.id_field in item else None, params)
            for item in items
        ]
        entities = self._expand(list(zip(keys, items)), params)
        final_keys = self.store.insert(entities)
        entities = [e.model_copy(update={"key": k}) for e, k in zip(entities, final_keys)]

        logger.debug(f"Created {len(entities)} '{self.kind}' records")
        results = entity_codec.flatten(entities, self.id_field)
        return results if was_list else results[0]

    def update(self, identifier: Any, data: Record, params: Params = None) -> Record:
        """Replace a record.

        With ``query.create`` set, a missing record is created (upsert);
        otherwise a missing record is an error.

        Raises:
            RecordNotFoundError: If the record does not exist and create is off
        """
        key = self.make_key(identifier, params)
        (entity,) = self._expand([(key, data)], params)

        if _as_bool(_query_of(params).get("create")):
            (final_key,) = self.store.upsert([entity])
            entity = entity.model_copy(update={"key": final_key})
        else:
            try:
                self.store.update([entity])
            except NoEntityToUpdateError as e:
                raise RecordNotFoundError(identifier, key.kind) from e

        return entity_codec.flatten(entity, self.id_field)  # type: ignore[return-value]

    def patch(self, identifier: Any, data: Record, params: Params = None) -> Any:
        """Merge ``data`` into one record (by id) or every record matching the query.

        The merge is shallow: top-level fields from ``data`` win.

        Returns:
            The patched record, or the list of patched records when no id is given

        Raises:
            RecordNotFoundError: If an id is given and the record does not exist
        """
        pairs, projection = self._read_phase(identifier, params)
        if not pairs:
            return []

        merged = [(key, {**current, **data}) for key, current in pairs]
        entities = self._expand(merged, params)
        try:
            self.store.update(entities)
        except NoEntityToUpdateError as e:
            # Deleted between the read and the write
            raise RecordNotFoundError(identifier, self.kind) from e

        logger.debug(f"Patched {len(entities)} '{self.kind}' records")
        results = [project(r, projection) for r in entity_codec.flatten(entities, self.id_field)]
        return results[0] if identifier is not None else results

    def remove(self, identifier: Any, params: Params = None) -> Any:
        """Delete one record (by id) or every record matching the query.

        Returns:
            The removed record(s) as they were before deletion

        Raises:
            RecordNotFoundError: If an id is given and the record does not exist
        """
        pairs, projection = self._read_phase(identifier, params)
        if not pairs:
            return []

        self.store.delete([key for key, _ in pairs])

        logger.debug(f"Removed {len(pairs)} '{self.kind}' records")
        results = [project(record, projection) for _, record in pairs]
        return results[0] if identifier is not None else results


@dataclass
class HookContext:
    """State handed to every hook.

    Before-hooks may replace ``params`` or ``data``; after-hooks may replace
    ``result``. Error-hooks see ``error``, which is re-raised afterwards.
    """

    service: RecordService
    method: str
    id: Any = None
    data: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: BaseException | None = None


Hook = Callable[[HookContext], Any]
HookSpec = Mapping[str, Hook | Iterable[Hook]]


class RecordService:
    """Public CRUD surface with hooks and logging.

    Example:
        people = RecordService(store, kind="Person")
        people.create({"id": "Bob", "age": 44})
        people.find({"query": {"age": {"$lte": 50}}})
    """

    def __init__(
        self,
        store: EntityStore,
        kind: str | None = None,
        id_field: str = "id",
        namespace: str | None = None,
        auto_index: bool = False,
        options: ServiceOptions | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Entity store client
            kind: Kind (collection) the service manages
            id_field: Record property holding the id
            namespace: Default namespace for all keys
            auto_index: Exclude oversized values from indexes by default
            options: Prebuilt options (takes precedence over the arguments above)
        """
        if options is None:
            options = ServiceOptions(
                kind=kind, id_field=id_field, namespace=namespace, auto_index=auto_index
            )
        self.direct = RecordOperations(store, options)
        self._hooks: dict[str, dict[str, list[Hook]]] = {
            stage: {method: [] for method in METHODS} for stage in ("before", "after", "error")
        }

    @property
    def kind(self) -> str:
        return self.direct.kind

    @property
    def id_field(self) -> str:
        return self.direct.id_field

    @property
    def options(self) -> ServiceOptions:
        return self.direct.options

    def make_key(self, identifier: Any = None, params: Params = None) -> Key:
        """Build the key for an identifier (see ``RecordOperations.make_key``)."""
        return self.direct.make_key(identifier, params)

    def hooks(
        self,
        before: HookSpec | None = None,
        after: HookSpec | None = None,
        error: HookSpec | None = None,
    ) -> RecordService:
        """Register hooks per method name, or for every method with ``"all"``.

        Returns:
            The service, for chaining
        """
        for stage, mapping in (("before", before), ("after", after), ("error", error)):
            for method, hooks in (mapping or {}).items():
                if method != "all" and method not in METHODS:
                    raise ValueError(
                        f"Unknown method '{method}'. Valid: all, {', '.join(METHODS)}"
                    )
                hook_list = [hooks] if callable(hooks) else list(hooks)
                for target in METHODS if method == "all" else (method,):
                    self._hooks[stage][target].extend(hook_list)
        return self

    def _run(self, stage: str, ctx: HookContext) -> None:
        for hook in self._hooks[stage][ctx.method]:
            hook(ctx)

    def _dispatch(self, ctx: HookContext) -> Any:
        logger.debug(f"{ctx.method} on '{self.kind}' (id={ctx.id!r})")
        try:
            self._run("before", ctx)
            op = getattr(self.direct, ctx.method)
            if ctx.method == "find":
                ctx.result = op(ctx.params)
            elif ctx.method == "create":
                ctx.result = op(ctx.data, ctx.params)
            elif ctx.method in ("get", "remove"):
                ctx.result = op(ctx.id, ctx.params)
            else:
                ctx.result = op(ctx.id, ctx.data, ctx.params)
            self._run("after", ctx)
        except Exception as e:
            logger.debug(f"{ctx.method} on '{self.kind}' failed: {e}")
            ctx.error = e
            self._run("error", ctx)
            raise
        return ctx.result

    def _context(
        self, method: str, id: Any = None, data: Any = None, params: Params = None
    ) -> HookContext:
        # Hooks edit their own copy, never the caller's params or query
        copied = dict(params or {})
        if isinstance(copied.get("query"), Mapping):
            copied["query"] = dict(copied["query"])
        return HookContext(service=self, method=method, id=id, data=data, params=copied)

    def find(self, params: Params = None) -> list[Record]:
        return self._dispatch(self._context("find", params=params))

    def get(self, id: Any, params: Params = None) -> Record:
        return self._dispatch(self._context("get", id=id, params=params))

    def create(self, data: Record | list[Record], params: Params = None) -> Any:
        return self._dispatch(self._context("create", data=data, params=params))

    def update(self, id: Any, data: Record, params: Params = None) -> Record:
        return self._dispatch(self._context("update", id=id, data=data, params=params))

    def patch(self, id: Any, data: Record, params: Params = None) -> Any:
        return self._dispatch(self._context("patch", id=id, data=data, params=params))

    def remove(self, id: Any, params: Params = None) -> Any:
        return self._dispatch(self._context("remove", id=id, params=params))
