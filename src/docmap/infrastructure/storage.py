"""MongoStorage — record persistence over one pymongo collection.

Concrete storage types subclass :class:`MongoStorage` and declare their
field transforms and scope key::

    class UserStorage(MongoStorage):
        scope_key_name = "tenant"
        fields = FieldConfig(
            dates=("createdAt", "sessions.*.startedAt"),
            uuids=("avatarId",),
            pools=("balance",),
            references={"managerId": "user"},
            ignore=("cache",),
        )

    users = UserStorage(db["users"], scope="tenant-42")

INVARIANT: each public operation is exactly one driver round trip (or
one cursor). Driver errors propagate unchanged; nothing is retried.
INVARIANT: every filter of a scoped instance is ANDed with its scope,
and the scope stage leads every aggregation pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from docmap.config.models import FieldConfig
from docmap.domain.records import StorageData
from docmap.infrastructure.diagnostics import QueryLog
from docmap.infrastructure.scope import ScopeResolver
from docmap.infrastructure.transform import TransformPipeline

if TYPE_CHECKING:
    from pymongo.collection import Collection
    from pymongo.command_cursor import CommandCursor


class MongoStorage:
    """Scoped, transform-aware CRUD over a MongoDB collection.

    Attributes:
        scope_key_name: Name of the scope component in composite ids.
        fields: Default field transforms for this storage type.
    """

    scope_key_name: ClassVar[str] = "scope"
    fields: ClassVar[FieldConfig] = FieldConfig()

    def __init__(
        self,
        collection: Collection,
        *,
        scope: str | None = None,
        fields: FieldConfig | None = None,
        query_log: QueryLog | None = None,
    ) -> None:
        self._collection = collection
        self._scope = scope or None
        self._fields = fields if fields is not None else type(self).fields
        self._query_log = query_log
        self._resolver = ScopeResolver(scope=self.scope(), key=self.scope_key())
        self._pipeline = TransformPipeline(
            FieldConfig(
                dates=self.dates(),
                uuids=self.uuids(),
                pools=self.pools(),
                references=self.references(),
                ignore=self.ignore(),
                defaults=self.defaults(),
            ),
            self._resolver,
        )

    # Declarative configuration (override in subclasses if needed)

    def scope(self) -> str | None:
        return self._scope

    def scope_key(self) -> str:
        return self.scope_key_name

    def get_collection(self) -> Collection:
        return self._collection

    def dates(self) -> tuple[str, ...]:
        return self._fields.dates

    def uuids(self) -> tuple[str, ...]:
        return self._fields.uuids

    def pools(self) -> tuple[str, ...]:
        return self._fields.pools

    def references(self) -> dict[str, str]:
        return self._fields.references

    def ignore(self) -> tuple[str, ...]:
        return self._fields.ignore

    def defaults(self) -> dict[str, Any]:
        return self._fields.defaults

    @property
    def resolver(self) -> ScopeResolver:
        return self._resolver

    @property
    def pipeline(self) -> TransformPipeline:
        return self._pipeline

    @property
    def query_log(self) -> QueryLog | None:
        return self._query_log

    # Reads

    def find_by_id(self, record_id: str) -> StorageData | None:
        """Fetch one record, or None if this scope has no such id."""
        return self._find_one(self._resolver.identifier_filter(str(record_id)), {})

    def find_by_ids(self, ids: Sequence[str]) -> dict[str, StorageData]:
        """Fetch several records keyed by id, in the order of *ids*.

        Ids without a stored record are omitted. Useful when the id order
        comes from another system (e.g. a search index).
        """
        if not ids:
            return {}

        wanted = list(dict.fromkeys(str(record_id) for record_id in ids))
        found = {data.id: data for data in self.find_by_filter(self._resolver.ids_filter(wanted))}
        return {record_id: found[record_id] for record_id in wanted if record_id in found}

    def find_all(self) -> list[StorageData]:
        return self.find_by_filter({})

    def find_one_by_filter(
        self,
        filter: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> StorageData | None:
        return self._find_one(self._resolver.apply(filter), dict(options or {}))

    def find_by_filter(
        self,
        filter: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> list[StorageData]:
        """Records matching *filter* within this scope.

        *options* are passed to ``Collection.find`` (``sort``, ``limit``,
        ``skip``, ``projection``...). No size bound is applied.
        """
        return self._find(self._resolver.apply(filter), dict(options or {}))

    def count_by_filter(
        self,
        filter: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> int:
        scoped_filter = self._resolver.apply(filter)
        opts = dict(options or {})
        self._log("count_documents", scoped_filter, opts)
        return int(self._collection.count_documents(scoped_filter, **opts))

    def aggregate(
        self,
        pipeline: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
    ) -> CommandCursor[dict[str, Any]]:
        """Run *pipeline* and return the raw, lazily iterated cursor.

        Scoped instances get a scope ``$match`` as the first stage so the
        indexed filter runs before anything else.
        """
        stages = self._resolver.apply_pipeline(pipeline)
        opts = dict(options or {})
        self._log("aggregate", stages, opts)
        return self._collection.aggregate(stages, **opts)

    # Writes

    def insert(self, data: StorageData, options: Mapping[str, Any] | None = None) -> None:
        """Insert a new record; pool fields are stored as ``current + pool``."""
        document = self._pipeline.encode_insert(data)
        opts = dict(options or {})
        self._log("insert_one", document, opts)
        self._collection.insert_one(document, **opts)

    def update(self, data: StorageData, options: Mapping[str, Any] | None = None) -> None:
        """Overwrite the record's fields and apply pool deltas atomically.

        Pool fields are sent as ``$inc`` only, so increments from other
        writers between our read and this update are preserved.
        """
        fields, increments = self._pipeline.encode_update(data)
        filter = self._resolver.identifier_filter(data.id)

        update: dict[str, Any] = {}
        if fields or not increments:
            update["$set"] = fields
        if increments:
            update["$inc"] = increments

        opts = dict(options or {})
        self._log("update_one", filter, opts)
        self._collection.update_one(filter, update, **opts)

    def delete(self, record_id: str, options: Mapping[str, Any] | None = None) -> None:
        filter = self._resolver.identifier_filter(str(record_id))
        opts = dict(options or {})
        self._log("delete_one", filter, opts)
        self._collection.delete_one(filter, **opts)

    # Lifecycle

    def free_up_memory(self) -> None:
        """Drop the recorded query trace."""
        if self._query_log is not None:
            self._query_log.clear()

    # Internals

    def _find_one(self, filter: dict[str, Any], options: dict[str, Any]) -> StorageData | None:
        options["limit"] = 1
        found = self._find(filter, options)
        return found[0] if found else None

    def _find(self, filter: dict[str, Any], options: dict[str, Any]) -> list[StorageData]:
        self._log("find", filter, options)
        cursor = self._collection.find(filter, **options)
        return [self._pipeline.decode(document) for document in cursor]

    def _log(self, operation: str, filter: Any, options: Mapping[str, Any]) -> None:
        if self._query_log is None:
            return
        self._query_log.record(self._collection.name, operation, filter, options)
