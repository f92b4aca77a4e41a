"""Tests for record <-> entity conversion."""

from kindstore.core.keys import Key
from kindstore.data.entity_codec import (
    MAX_INDEX_SIZE,
    expand,
    expand_properties,
    flatten,
    is_big,
    largest_leaf_size,
)


def _excluded(entity) -> dict[str, bool]:
    return {p.name: p.exclude_from_indexes for p in entity.properties}


class TestIsBig:
    def test_boundary(self):
        assert is_big("x" * MAX_INDEX_SIZE) is False
        assert is_big("x" * (MAX_INDEX_SIZE + 1)) is True

    def test_utf8_bytes_are_counted(self):
        # 2 bytes per character
        assert is_big("é" * 751) is True
        assert is_big("é" * 750) is False

    def test_binary(self):
        assert is_big(b"\x00" * 1501) is True

    def test_nested_values(self):
        assert is_big({"a": {"b": ["short", "x" * 1501]}}) is True
        assert is_big({"a": ["short"] * 1000}) is False

    def test_scalars_are_never_big(self):
        assert largest_leaf_size(10**100) == 0
        assert largest_leaf_size(None) == 0
        assert largest_leaf_size([]) == 0

    def test_custom_limit(self):
        assert is_big("abcd", limit=3) is True


class TestExpand:
    def test_id_field_is_not_stored(self):
        entity = expand((Key((("Person", "Bob"),)), {"id": "Bob", "age": 44}))
        assert [p.name for p in entity.properties] == ["age"]

    def test_dont_index(self):
        entity = expand(
            (Key((("Person", "Bob"),)), {"age": 44, "children": 2}),
            dont_index=["age"],
        )
        assert _excluded(entity) == {"age": True, "children": False}

    def test_auto_index_excludes_big_values(self):
        props = expand_properties({"bio": "x" * 1501, "name": "Bob"}, auto_index=True)
        assert {p.name: p.exclude_from_indexes for p in props} == {"bio": True, "name": False}

    def test_auto_index_off_keeps_big_values_indexed(self):
        props = expand_properties({"bio": "x" * 1501})
        assert props[0].exclude_from_indexes is False

    def test_list_input_keeps_order(self):
        entities = expand(
            [(Key((("Person", 1),)), {"n": 1}), (Key((("Person", 2),)), {"n": 2})]
        )
        assert [e.key.id for e in entities] == [1, 2]


class TestFlatten:
    def test_id_is_injected(self):
        entity = expand((Key((("Person", "Bob"),)), {"age": 44}))
        assert flatten(entity) == {"age": 44, "id": "Bob"}

    def test_custom_id_field(self):
        entity = expand((Key((("Person", 5),)), {"age": 44}), id_field="_id")
        assert flatten(entity, "_id") == {"age": 44, "_id": 5}

    def test_none_and_lists(self):
        assert flatten(None) is None
        entity = expand((Key((("Person", 1),)), {}))
        assert flatten([entity]) == [{"id": 1}]
