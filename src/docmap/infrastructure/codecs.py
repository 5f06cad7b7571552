"""Field codecs — per-path conversions between record bodies and BSON.

Each codec takes a working :class:`Document` and the patterns it applies
to, and rewrites matching paths in place. Values of ``None`` are never
converted. Values of an unexpected shape pass through unchanged: a
malformed date or UUID is stored and returned as-is rather than rejected,
so documents written by older code keep loading.
"""

from __future__ import annotations

import copy
import math
import re
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from bson.binary import OLD_UUID_SUBTYPE, UUID_SUBTYPE, Binary
from bson.datetime_ms import DatetimeMS
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.objectid import ObjectId

from docmap.domain.paths import SEPARATOR, WILDCARD, Document, NodeKind, kind_of, split_path

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

POOL_CURRENT = "current"
POOL_DELTA = "pool"
REFERENCE_ALIAS = "alias"
REFERENCE_ID = "id"

_UUID_SUBTYPES = frozenset({OLD_UUID_SUBTYPE, UUID_SUBTYPE})


# ── Scalar conversions ───────────────────────────────────────────────


def to_epoch_seconds(value: Any) -> int | None:
    """Epoch seconds (floored) for a BSON date value, else None.

    Naive datetimes are read as UTC, which is how pymongo returns them
    unless the client is ``tz_aware``.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return math.floor(value.timestamp())
    if isinstance(value, DatetimeMS):
        return int(value) // 1000
    return None


def from_epoch_seconds(value: Any) -> datetime | None:
    """UTC datetime for integer or float epoch seconds, else None.

    Numbers no datetime can represent also give None, so they are stored
    unchanged like any other malformed date.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=UTC)
    except (OverflowError, ValueError, OSError):
        # Not representable as a datetime (NaN or out of range).
        return None


def uuid_to_string(value: Any) -> str | None:
    """Canonical lowercase 36-char form of a UUID binary, else None."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Binary) and len(value) == 16:
        return str(uuid.UUID(bytes=bytes(value)))
    return None


def string_to_uuid(value: Any) -> Binary | None:
    """UUID binary (subtype 4) for a canonical hyphenated string, else None."""
    if isinstance(value, str) and UUID_PATTERN.match(value):
        return Binary.from_uuid(uuid.UUID(value))
    return None


def normalize(value: Any) -> Any:
    """Replace driver wrapper types with plain Python values, recursively."""
    kind = kind_of(value)
    if kind is NodeKind.MAPPING:
        return {str(key): normalize(item) for key, item in value.items()}
    if kind is NodeKind.SEQUENCE:
        return [normalize(item) for item in value]
    if isinstance(value, Int64):
        return int(value)
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Binary):
        if value.subtype in _UUID_SUBTYPES and len(value) == 16:
            return uuid_to_string(value)
        return bytes(value)
    return value


# ── Codecs ───────────────────────────────────────────────────────────


def apply_defaults(document: Document, defaults: Mapping[str, Any]) -> None:
    """Fill absent paths with their configured default."""
    for path, value in defaults.items():
        if not document.has(path):
            document.set(path, copy.deepcopy(value))


def decode_dates(document: Document, patterns: Iterable[str]) -> None:
    for path in document.expand(patterns):
        seconds = to_epoch_seconds(document.get(path))
        if seconds is not None:
            document.set(path, seconds)


def encode_dates(document: Document, patterns: Iterable[str]) -> None:
    for path in document.expand(patterns):
        moment = from_epoch_seconds(document.get(path))
        if moment is not None:
            document.set(path, moment)


def decode_uuids(document: Document, patterns: Iterable[str]) -> None:
    for path in document.expand(patterns):
        as_string = uuid_to_string(document.get(path))
        if as_string is not None:
            document.set(path, as_string)


def encode_uuids(document: Document, patterns: Iterable[str]) -> None:
    for path in document.expand(patterns):
        binary = string_to_uuid(document.get(path))
        if binary is not None:
            document.set(path, binary)


def expand_references(document: Document, references: Mapping[str, str]) -> dict[str, str]:
    """Concrete path -> alias for every configured reference pattern."""
    expanded: dict[str, str] = {}
    for pattern, alias in references.items():
        for path in document.expand([pattern]):
            expanded[path] = alias
    return expanded


def decode_references(document: Document, references: Mapping[str, str]) -> None:
    for path, alias in expand_references(document, references).items():
        value = document.get(path)
        if value is None or (isinstance(value, Mapping) and REFERENCE_ID in value):
            continue
        document.set(path, {REFERENCE_ALIAS: alias, REFERENCE_ID: value})


def encode_references(document: Document, references: Mapping[str, str]) -> None:
    for path in expand_references(document, references):
        value = document.get(path)
        if isinstance(value, Mapping) and REFERENCE_ID in value:
            document.set(path, value[REFERENCE_ID])


def decode_pools(document: Document, patterns: Iterable[str]) -> None:
    """Materialize bare stored values as ``{"current": value, "pool": 0}``."""
    for path in document.expand(patterns):
        value = document.get(path)
        if value is not None and kind_of(value) is NodeKind.SCALAR:
            document.set(path, {POOL_CURRENT: value, POOL_DELTA: 0})


def collapse_pools(document: Document, patterns: Iterable[str]) -> None:
    """Replace each pool pair with ``current + pool`` for a fresh insert."""
    for path in document.expand(patterns):
        value = document.get(path)
        if isinstance(value, Mapping):
            document.set(path, value.get(POOL_CURRENT, 0) + value.get(POOL_DELTA, 0))


def extract_pool_increments(document: Document, patterns: Iterable[str]) -> dict[str, Any]:
    """Remove every pool path and return ``path -> pool delta``.

    INVARIANT: ``current`` is never written back by an update, so
    concurrent increments from other writers are not clobbered. A bare
    value at a pool path carries no delta and is dropped.
    """
    paths = document.expand(patterns)
    increments: dict[str, Any] = {}
    for path in paths:
        value = document.get(path)
        if isinstance(value, Mapping):
            increments[path] = value.get(POOL_DELTA, 0)
    document.delete_many(paths)
    return increments


def _leads_to(prefix: tuple[str, ...], pattern: list[str]) -> bool:
    return len(prefix) < len(pattern) and all(
        want in (WILDCARD, have) for have, want in zip(prefix, pattern)
    )


def set_fields(data: Mapping[str, Any], pools: Iterable[str]) -> dict[str, Any]:
    """``$set`` document for *data* that never overlaps a pool path.

    Containers on the way to a pool pattern are split into dotted leaf
    paths, so ``$set: {"stats.name": ...}`` sits beside
    ``$inc: {"stats.views": ...}`` instead of replacing ``stats`` as a
    whole. Empty containers on that way are skipped, which leaves the
    stored pools under them in place. Everything else is set as given.
    """
    patterns = [split_path(pattern) for pattern in pools]
    fields: dict[str, Any] = {}

    def visit(prefix: tuple[str, ...], value: Any) -> None:
        kind = kind_of(value)
        if kind is NodeKind.SCALAR or not any(_leads_to(prefix, p) for p in patterns):
            fields[SEPARATOR.join(prefix)] = value
            return
        if kind is NodeKind.MAPPING:
            children = [(str(key), child) for key, child in value.items()]
        else:
            children = [(str(index), child) for index, child in enumerate(value)]
        for key, child in children:
            visit((*prefix, key), child)

    for key, value in data.items():
        visit((str(key),), value)
    return fields


def drop_ignored(document: Document, patterns: Iterable[str]) -> None:
    document.delete_many(document.expand(patterns))
