"""Transform pipeline — ordered codec runs for the read and write paths.

Decode (stored document -> ``StorageData``):
  1. ``_id`` extraction with scope integrity check
  2. read defaults
  3. dates -> epoch seconds
  4. uuids and reference ids -> canonical strings
  5. pools -> ``{"current", "pool"}``
  6. references -> ``{"alias", "id"}``
  7. ignore
  8. scalar normalization

Encode (``StorageData`` -> stored document):
  1. identifier (``_id`` on insert, filter on update)
  2. epoch seconds -> dates
  3. references -> bare id
  4. canonical strings -> uuids
  5. ignore
  6. pools: collapsed to ``current + pool`` on insert, split out as
     ``$inc`` deltas on update

The order is fixed; round-trip tests depend on it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from docmap.config.models import FieldConfig
from docmap.domain.paths import Document
from docmap.domain.records import StorageData
from docmap.errors import ScopeIntegrityError
from docmap.infrastructure import codecs
from docmap.infrastructure.scope import ID_FIELD, ScopeResolver

logger = logging.getLogger(__name__)


class TransformPipeline:
    """Converts between stored documents and records for one storage type."""

    def __init__(self, fields: FieldConfig, resolver: ScopeResolver) -> None:
        self._fields = fields
        self._resolver = resolver

    @property
    def fields(self) -> FieldConfig:
        return self._fields

    def decode(self, raw: Mapping[str, Any]) -> StorageData:
        """Build a record from a document returned by the driver.

        Raises:
            ScopeIntegrityError: If the document belongs to another scope.
        """
        try:
            record_id = self._resolver.extract_id(raw.get(ID_FIELD))
        except ScopeIntegrityError as exc:
            logger.error(
                "Scope integrity fault: expected %r, got %r (_id=%r)",
                exc.expected,
                exc.actual,
                raw.get(ID_FIELD),
            )
            raise

        document = Document({key: value for key, value in raw.items() if key != ID_FIELD})
        fields = self._fields

        codecs.apply_defaults(document, fields.defaults)
        codecs.decode_dates(document, fields.dates)
        codecs.decode_uuids(document, (*fields.uuids, *fields.references))
        codecs.decode_pools(document, fields.pools)
        codecs.decode_references(document, fields.references)
        codecs.drop_ignored(document, fields.ignore)

        return StorageData(
            id=record_id,
            body=codecs.normalize(document.all()),
            scope=self._resolver.scope or None,
        )

    def encode_insert(self, data: StorageData) -> dict[str, Any]:
        """Full document for ``insert_one``, ``_id`` first."""
        document = self._encode(data)
        codecs.collapse_pools(document, self._fields.pools)
        return {ID_FIELD: self._resolver.composite_id(data.id), **document.all()}

    def encode_update(self, data: StorageData) -> tuple[dict[str, Any], dict[str, Any]]:
        """``($set fields, $inc deltas)`` for ``update_one``.

        Pool fields never appear in the ``$set`` part, and neither does any
        parent of a pool path; see :func:`codecs.set_fields`.
        """
        document = self._encode(data)
        increments = codecs.extract_pool_increments(document, self._fields.pools)
        return codecs.set_fields(document.all(), self._fields.pools), increments

    def _encode(self, data: StorageData) -> Document:
        document = Document(data.body)
        document.delete(ID_FIELD)
        fields = self._fields

        codecs.encode_dates(document, fields.dates)
        codecs.encode_references(document, fields.references)
        codecs.encode_uuids(document, fields.uuids)
        codecs.drop_ignored(document, fields.ignore)
        return document
