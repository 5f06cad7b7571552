"""Shared pytest fixtures and test helpers for docmap tests."""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Iterator, Mapping
from typing import Any

import pytest
from pymongo.errors import DuplicateKeyError, WriteError

_MISSING = object()


# ---------------------------------------------------------------------------
# In-memory stand-in for the pymongo Collection surface used by MongoStorage
# ---------------------------------------------------------------------------


def _resolve(document: Any, path: str) -> Any:
    node = document
    for segment in path.split("."):
        if isinstance(node, Mapping):
            node = node.get(segment, _MISSING)
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return _MISSING
        if node is _MISSING:
            return _MISSING
    return node


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, Mapping) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in" and value not in operand:
                return False
            if op == "$ne" and value == operand:
                return False
            if op == "$gt" and not (value is not _MISSING and value > operand):
                return False
            if op == "$gte" and not (value is not _MISSING and value >= operand):
                return False
            if op == "$lt" and not (value is not _MISSING and value < operand):
                return False
            if op == "$exists" and (value is not _MISSING) != bool(operand):
                return False
        return True
    return value == condition


def matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    """Evaluate the subset of MongoDB filter syntax the tests rely on."""
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _matches_condition(_resolve(document, key), condition):
            return False
    return True


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    node: Any = document
    for segment in parents:
        if isinstance(node, list):
            node = node[int(segment)]
        else:
            node = node.setdefault(segment, {})
    if isinstance(node, list):
        if int(leaf) == len(node):
            node.append(value)
        else:
            node[int(leaf)] = value
    else:
        node[leaf] = value


def _check_conflicts(update: Mapping[str, Any]) -> None:
    paths = [path for operator in ("$set", "$inc") for path in update.get(operator, {})]
    for index, path in enumerate(paths):
        for other in paths[index + 1 :]:
            shorter, longer = sorted((path, other), key=len)
            if longer == shorter or longer.startswith(shorter + "."):
                msg = f"Updating the path '{longer}' would create a conflict at '{shorter}'"
                raise WriteError(msg, 40)


class FakeCollection:
    """Thread-safe in-memory collection (insert/update/delete/find/count/aggregate)."""

    def __init__(self, name: str = "records") -> None:
        self.name = name
        self.documents: list[dict[str, Any]] = []
        self.pipelines: list[list[dict[str, Any]]] = []
        self._lock = threading.Lock()

    def insert_one(self, document: Mapping[str, Any], **kwargs: Any) -> None:
        with self._lock:
            if any(doc["_id"] == document["_id"] for doc in self.documents):
                raise DuplicateKeyError(f"duplicate _id {document['_id']!r}")
            self.documents.append(copy.deepcopy(dict(document)))

    def update_one(
        self, filter: Mapping[str, Any], update: Mapping[str, Any], **kwargs: Any
    ) -> None:
        _check_conflicts(update)
        with self._lock:
            for doc in self.documents:
                if matches(doc, filter):
                    for path, value in update.get("$set", {}).items():
                        _set_path(doc, path, copy.deepcopy(value))
                    for path, delta in update.get("$inc", {}).items():
                        current = _resolve(doc, path)
                        _set_path(doc, path, (0 if current is _MISSING else current) + delta)
                    return

    def delete_one(self, filter: Mapping[str, Any], **kwargs: Any) -> None:
        with self._lock:
            for index, doc in enumerate(self.documents):
                if matches(doc, filter):
                    del self.documents[index]
                    return

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        limit: int = 0,
        skip: int = 0,
        **kwargs: Any,
    ) -> Iterator[dict[str, Any]]:
        with self._lock:
            found = [copy.deepcopy(doc) for doc in self.documents if matches(doc, filter or {})]
        found = found[skip:]
        if limit:
            found = found[:limit]
        return iter(found)

    def count_documents(self, filter: Mapping[str, Any], **kwargs: Any) -> int:
        with self._lock:
            return sum(1 for doc in self.documents if matches(doc, filter))

    def aggregate(self, pipeline: list[dict[str, Any]], **kwargs: Any) -> Iterator[dict[str, Any]]:
        self.pipelines.append(copy.deepcopy(pipeline))
        with self._lock:
            results = [copy.deepcopy(doc) for doc in self.documents]
        for stage in pipeline:
            ((op, arg),) = stage.items()
            if op == "$match":
                results = [doc for doc in results if matches(doc, arg)]
            elif op == "$limit":
                results = results[:arg]
            elif op == "$count":
                results = [{arg: len(results)}]
            else:
                raise NotImplementedError(op)
        return iter(results)


@pytest.fixture
def collection() -> FakeCollection:
    """Empty in-memory collection named ``records``."""
    return FakeCollection()


@pytest.fixture
def make_collection() -> Callable[[str], FakeCollection]:
    """Factory for additional named in-memory collections."""

    def factory(name: str = "records") -> FakeCollection:
        return FakeCollection(name)

    return factory
