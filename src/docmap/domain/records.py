"""Domain records and the storage contract consumed by applications.

INVARIANT: records are immutable. Every transform produces a new
``StorageData``; the engine never edits a caller's body in place.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class StorageData(BaseModel):
    """One record: identifier, nested body, and the scope it was read in.

    Attributes:
        id: Record identifier, unique within its scope.
        body: Arbitrary nested mapping of field values.
        scope: Tenant scope the record belongs to, or None when unscoped.
    """

    model_config = {"frozen": True}

    id: str
    body: dict[str, Any] = Field(default_factory=dict)
    scope: str | None = None


@runtime_checkable
class Storage(Protocol):
    """Record-level persistence surface exposed to applications."""

    def find_by_id(self, id: str) -> StorageData | None: ...

    def find_by_ids(self, ids: Sequence[str]) -> dict[str, StorageData]: ...

    def insert(self, data: StorageData, options: dict[str, Any] | None = None) -> None: ...

    def update(self, data: StorageData, options: dict[str, Any] | None = None) -> None: ...

    def delete(self, id: str, options: dict[str, Any] | None = None) -> None: ...
