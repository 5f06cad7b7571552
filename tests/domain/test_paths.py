"""Tests for wildcard path expansion and the dotted-path Document."""

from __future__ import annotations

import pytest

from docmap.domain.paths import Document, NodeKind, expand_many, expand_one, kind_of, split_path
from docmap.errors import InvalidPathError


class TestKindOf:
    def test_mapping(self) -> None:
        assert kind_of({"a": 1}) is NodeKind.MAPPING

    def test_sequences(self) -> None:
        assert kind_of([1, 2]) is NodeKind.SEQUENCE
        assert kind_of((1, 2)) is NodeKind.SEQUENCE

    def test_strings_and_bytes_are_scalars(self) -> None:
        assert kind_of("abc") is NodeKind.SCALAR
        assert kind_of(b"abc") is NodeKind.SCALAR
        assert kind_of(None) is NodeKind.SCALAR


class TestSplitPath:
    def test_segments(self) -> None:
        assert split_path("items.*.uuid") == ["items", "*", "uuid"]

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_empty_segments_rejected(self, path: str) -> None:
        with pytest.raises(InvalidPathError):
            split_path(path)


class TestExpandOne:
    def test_wildcard_over_sequence(self) -> None:
        doc = {"items": [{"uuid": "x"}, {"uuid": "y"}]}
        assert expand_one("items.*.uuid", doc) == {"items.0.uuid", "items.1.uuid"}

    def test_wildcard_over_mapping(self) -> None:
        doc = {"stats": {"views": 1, "likes": 2}}
        assert expand_one("stats.*", doc) == {"stats.views", "stats.likes"}

    def test_exact_path_present(self) -> None:
        assert expand_one("profile.name", {"profile": {"name": "Ann"}}) == {"profile.name"}

    def test_exact_path_absent(self) -> None:
        assert expand_one("profile.age", {"profile": {"name": "Ann"}}) == set()

    def test_branch_without_key_discarded(self) -> None:
        doc = {"items": [{"uuid": "x"}, {"other": 1}]}
        assert expand_one("items.*.uuid", doc) == {"items.0.uuid"}

    def test_wildcard_over_scalar_matches_nothing(self) -> None:
        assert expand_one("name.*", {"name": "Ann"}) == set()

    def test_multiple_wildcards(self) -> None:
        doc = {"groups": [{"members": [{"id": 1}, {"id": 2}]}, {"members": [{"id": 3}]}]}
        assert expand_one("groups.*.members.*.id", doc) == {
            "groups.0.members.0.id",
            "groups.0.members.1.id",
            "groups.1.members.0.id",
        }

    def test_numeric_segment_addresses_index(self) -> None:
        doc = {"items": ["a", "b"]}
        assert expand_one("items.1", doc) == {"items.1"}
        assert expand_one("items.2", doc) == set()

    def test_trailing_wildcard_includes_null_values(self) -> None:
        assert expand_one("tags.*", {"tags": [None, "x"]}) == {"tags.0", "tags.1"}

    def test_empty_sequence(self) -> None:
        assert expand_one("items.*.uuid", {"items": []}) == set()


class TestExpandMany:
    def test_union(self) -> None:
        doc = {"a": 1, "b": {"c": 2}}
        assert expand_many(["a", "b.*", "missing"], doc) == {"a", "b.c"}

    def test_no_patterns(self) -> None:
        assert expand_many([], {"a": 1}) == set()


class TestDocument:
    def test_input_not_mutated(self) -> None:
        source = {"profile": {"name": "Ann"}, "tags": ("x", "y")}
        doc = Document(source)
        doc.set("profile.name", "Bob")
        doc.delete("tags.0")
        assert source == {"profile": {"name": "Ann"}, "tags": ("x", "y")}
        assert doc.all() == {"profile": {"name": "Bob"}, "tags": ["y"]}

    def test_get_default(self) -> None:
        doc = Document({"a": {"b": 1}})
        assert doc.get("a.b") == 1
        assert doc.get("a.c") is None
        assert doc.get("a.b.c", "fallback") == "fallback"

    def test_has_distinguishes_none(self) -> None:
        doc = Document({"a": None})
        assert doc.has("a") is True
        assert doc.has("b") is False

    def test_set_creates_intermediate_mappings(self) -> None:
        doc = Document()
        doc.set("a.b.c", 1)
        assert doc.all() == {"a": {"b": {"c": 1}}}

    def test_set_replaces_scalar_parent(self) -> None:
        doc = Document({"a": 5})
        doc.set("a.b", 1)
        assert doc.all() == {"a": {"b": 1}}

    def test_set_sequence_index_and_append(self) -> None:
        doc = Document({"items": ["a"]})
        doc.set("items.0", "z")
        doc.set("items.1", "b")
        assert doc.all() == {"items": ["z", "b"]}

    def test_set_sequence_out_of_range(self) -> None:
        doc = Document({"items": []})
        with pytest.raises(InvalidPathError):
            doc.set("items.3", "x")

    def test_delete_absent_is_noop(self) -> None:
        doc = Document({"a": 1})
        doc.delete("b.c")
        assert doc.all() == {"a": 1}

    def test_delete_many_removes_later_indices_first(self) -> None:
        doc = Document({"tags": ["a", "b", "c"], "keep": 1})
        doc.delete_many({"tags.0", "tags.2", "tags.1"})
        assert doc.all() == {"tags": [], "keep": 1}

    def test_expand(self) -> None:
        doc = Document({"items": [{"at": 1}, {"at": 2}]})
        assert doc.expand(["items.*.at"]) == {"items.0.at", "items.1.at"}
