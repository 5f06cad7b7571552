"""Exception hierarchy for docmap.

Only conditions the engine itself detects live here. Driver failures
(``pymongo.errors.PyMongoError``) propagate to the caller unchanged, and
a missing record is ``None``, never an exception.
"""

from __future__ import annotations

from typing import Any


class DocmapError(Exception):
    """Base exception for all docmap errors."""


class ConfigError(DocmapError):
    """Configuration file could not be read or parsed."""


class InvalidPathError(DocmapError, ValueError):
    """A dotted path or path pattern is empty or has empty segments."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Invalid document path: {path!r}")


class ScopeIntegrityError(DocmapError):
    """A scoped read returned a document that belongs to another scope.

    INVARIANT: never corrected silently. Either data leaked across
    tenants or the collection is misconfigured.
    """

    def __init__(self, expected: str, actual: Any) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Storage returned data for scope {actual!r}, expected {expected!r}")
