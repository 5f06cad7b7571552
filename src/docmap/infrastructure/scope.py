"""Composite-key scoping for multi-tenant collections.

Scoped documents carry ``_id = {<key>: scope, "id": id}`` so records with
the same id in different scopes never collide. Every read and write of a
scoped storage goes through this resolver; leaving it out breaks tenant
isolation on the shared collection.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from docmap.errors import ScopeIntegrityError

ID_FIELD = "_id"
ID_KEY = "id"


class ScopeResolver(BaseModel):
    """Builds identifiers and filters for one storage instance.

    Attributes:
        scope: Tenant value, or None/empty for an unscoped collection.
        key: Name of the scope component inside composite ids.
    """

    model_config = {"frozen": True}

    scope: str | None = None
    key: str = "scope"

    @property
    def scoped(self) -> bool:
        return bool(self.scope)

    @property
    def scope_field(self) -> str:
        return f"{ID_FIELD}.{self.key}"

    def composite_id(self, record_id: str) -> str | dict[str, str]:
        """``_id`` value for a new document."""
        if self.scoped:
            return {self.key: self.scope, ID_KEY: record_id}
        return record_id

    def identifier_filter(self, record_id: str) -> dict[str, Any]:
        """Filter matching exactly one record of this scope."""
        if self.scoped:
            return {self.scope_field: self.scope, f"{ID_FIELD}.{ID_KEY}": record_id}
        return {ID_FIELD: record_id}

    def ids_filter(self, ids: Sequence[str]) -> dict[str, Any]:
        """Filter matching any of *ids*; combine with :meth:`apply` for scope."""
        field = f"{ID_FIELD}.{ID_KEY}" if self.scoped else ID_FIELD
        return {field: {"$in": list(ids)}}

    def scope_prefix(self) -> dict[str, Any]:
        if self.scoped:
            return {self.scope_field: self.scope}
        return {}

    def apply(self, filter: Mapping[str, Any]) -> dict[str, Any]:
        """AND the scope prefix into a caller filter.

        The prefix comes first. A caller filter that names the scope field
        itself is combined through ``$and`` so it can only narrow the
        result, never replace the instance scope.
        """
        prefix = self.scope_prefix()
        if not prefix:
            return dict(filter)
        if self.scope_field in filter:
            return {"$and": [prefix, dict(filter)]}
        return {**prefix, **filter}

    def apply_pipeline(self, pipeline: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Prepend a scope ``$match`` so the indexed filter runs first."""
        stages = [dict(stage) for stage in pipeline]
        if self.scoped:
            return [{"$match": self.scope_prefix()}, *stages]
        return stages

    def extract_id(self, raw_id: Any) -> str:
        """Record id from a stored ``_id``, checking its scope.

        Raises:
            ScopeIntegrityError: If this resolver is scoped and the stored
                id is not a composite of the same scope.
        """
        if not self.scoped:
            return str(raw_id)
        if not isinstance(raw_id, Mapping):
            raise ScopeIntegrityError(self.scope or "", None)
        actual = raw_id.get(self.key)
        if actual != self.scope:
            raise ScopeIntegrityError(self.scope or "", actual)
        record_id = raw_id.get(ID_KEY)
        if record_id is None:
            raise ScopeIntegrityError(self.scope or "", None)
        return str(record_id)
