"""Wildcard path patterns and the dotted-path document model.

A path is a dot-delimited string (``items.0.createdAt``). A pattern is a
path whose segments may be the wildcard ``*``, matching any key of a
mapping or any index of a sequence at that depth. Sequence indices are
written as decimal strings.

Pure functions, no infrastructure dependencies. Expansion depends only on
the pattern and the current shape of the document; result sets carry no
ordering guarantee.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping, MutableMapping, MutableSequence
from enum import StrEnum
from typing import Any

from docmap.errors import InvalidPathError

WILDCARD = "*"
SEPARATOR = "."

_MISSING = object()


class NodeKind(StrEnum):
    """Shape of a node in a nested document."""

    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"


def kind_of(node: Any) -> NodeKind:
    """Classify *node*. Strings and bytes are scalars, not sequences."""
    if isinstance(node, Mapping):
        return NodeKind.MAPPING
    if isinstance(node, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def split_path(path: str) -> list[str]:
    """Split a dotted path into segments, rejecting empty segments."""
    segments = path.split(SEPARATOR)
    if not path or any(segment == "" for segment in segments):
        raise InvalidPathError(path)
    return segments


def _index(segment: str, length: int) -> int | None:
    if not segment.isdigit():
        return None
    index = int(segment)
    return index if index < length else None


def _children(node: Any) -> Iterator[tuple[str, Any]]:
    kind = kind_of(node)
    if kind is NodeKind.MAPPING:
        for key, child in node.items():
            yield str(key), child
    elif kind is NodeKind.SEQUENCE:
        for index, child in enumerate(node):
            yield str(index), child


def _step(node: Any, segment: str) -> Any:
    """Return the child of *node* named by *segment*, or ``_MISSING``."""
    kind = kind_of(node)
    if kind is NodeKind.MAPPING:
        return node.get(segment, _MISSING)
    if kind is NodeKind.SEQUENCE:
        index = _index(segment, len(node))
        return _MISSING if index is None else node[index]
    return _MISSING


def expand_one(pattern: str, document: Any) -> set[str]:
    """Expand *pattern* into every concrete path present in *document*.

    Literal segments must name an existing key (or in-range index) or the
    branch is dropped. No match anywhere yields an empty set.

    Examples:
        >>> sorted(expand_one("items.*.uuid", {"items": [{"uuid": 1}, {"uuid": 2}]}))
        ['items.0.uuid', 'items.1.uuid']
        >>> expand_one("missing.*", {"items": []})
        set()
    """
    segments = split_path(pattern)
    found: set[str] = set()

    def walk(node: Any, depth: int, prefix: tuple[str, ...]) -> None:
        if depth == len(segments):
            found.add(SEPARATOR.join(prefix))
            return
        segment = segments[depth]
        if segment == WILDCARD:
            for key, child in _children(node):
                walk(child, depth + 1, (*prefix, key))
            return
        child = _step(node, segment)
        if child is not _MISSING:
            walk(child, depth + 1, (*prefix, segment))

    walk(document, 0, ())
    return found


def expand_many(patterns: Iterable[str], document: Any) -> set[str]:
    """Union of :func:`expand_one` over all *patterns*."""
    found: set[str] = set()
    for pattern in patterns:
        found |= expand_one(pattern, document)
    return found


def _thaw(node: Any) -> Any:
    """Deep copy with mappings as ``dict`` and sequences as ``list``."""
    kind = kind_of(node)
    if kind is NodeKind.MAPPING:
        return {key: _thaw(value) for key, value in node.items()}
    if kind is NodeKind.SEQUENCE:
        return [_thaw(value) for value in node]
    return copy.deepcopy(node)


def _deletion_order(path: str) -> tuple[tuple[int, int | str], ...]:
    # Numeric segments compare as integers so later sequence items go first.
    return tuple((0, int(s)) if s.isdigit() else (1, s) for s in path.split(SEPARATOR))


class Document:
    """Mutable working copy of a nested document addressed by dotted paths.

    The input mapping is deep-copied (tuples become lists, mapping types
    become ``dict``); callers' data is never touched.
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = _thaw(data or {})

    def all(self) -> dict[str, Any]:
        return self._data

    def expand(self, patterns: Iterable[str]) -> set[str]:
        return expand_many(patterns, self._data)

    def get(self, path: str, default: Any = None) -> Any:
        node: Any = self._data
        for segment in split_path(path):
            node = _step(node, segment)
            if node is _MISSING:
                return default
        return node

    def has(self, path: str) -> bool:
        return self.get(path, _MISSING) is not _MISSING

    def set(self, path: str, value: Any) -> None:
        """Assign *value* at *path*, creating missing intermediate mappings.

        Scalars standing in the way of the path are replaced by mappings.
        Sequence segments must be an existing index or the next free one.
        """
        *parents, leaf = split_path(path)
        node: Any = self._data
        for segment in parents:
            child = _step(node, segment)
            if kind_of(child) is NodeKind.SCALAR:
                child = {}
                self._assign(node, segment, child, path)
            node = child
        self._assign(node, leaf, value, path)

    def delete(self, path: str) -> None:
        """Remove *path*. Absent paths are ignored; sequence items are removed."""
        *parents, leaf = split_path(path)
        node: Any = self._data
        for segment in parents:
            node = _step(node, segment)
            if node is _MISSING:
                return
        kind = kind_of(node)
        if kind is NodeKind.MAPPING and leaf in node:
            del node[leaf]
        elif kind is NodeKind.SEQUENCE and isinstance(node, MutableSequence):
            index = _index(leaf, len(node))
            if index is not None:
                del node[index]

    def delete_many(self, paths: Iterable[str]) -> None:
        """Remove several paths, highest sequence indices first."""
        for path in sorted(paths, key=_deletion_order, reverse=True):
            self.delete(path)

    @staticmethod
    def _assign(node: Any, segment: str, value: Any, path: str) -> None:
        if isinstance(node, MutableMapping):
            node[segment] = value
            return
        if isinstance(node, MutableSequence) and segment.isdigit():
            index = int(segment)
            if index < len(node):
                node[index] = value
                return
            if index == len(node):
                node.append(value)
                return
        raise InvalidPathError(path)
