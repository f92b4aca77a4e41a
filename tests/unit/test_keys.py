"""Tests for keys and identifier handling."""

import pytest

from kindstore.core.keys import Key, coerce_identifier, make_key


class TestCoerceIdentifier:
    def test_integer_strings_become_ints(self):
        assert coerce_identifier("42") == 42
        assert coerce_identifier("-7") == -7
        assert coerce_identifier(42) == 42

    def test_integral_floats_become_ints(self):
        assert coerce_identifier(3.0) == 3

    def test_names_stay_strings(self):
        assert coerce_identifier("Bob") == "Bob"
        assert coerce_identifier("4.5") == "4.5"
        assert coerce_identifier("12ab") == "12ab"

    def test_bools_are_not_numbers(self):
        assert coerce_identifier(True) == "True"


class TestKey:
    def test_properties(self):
        key = Key((("Person", "Bob"), ("Pet", 7)), namespace="tenant")
        assert key.kind == "Pet"
        assert key.id == 7
        assert key.is_complete is True
        assert key.parent == Key((("Person", "Bob"),), namespace="tenant")
        assert key.flat_path == ["Person", "Bob", "Pet", 7]
        assert str(key) == "tenant:Person/Bob/Pet/7"

    def test_incomplete_key(self):
        key = Key((("Person", None),))
        assert key.is_complete is False
        assert key.flat_path == ["Person"]
        assert key.completed(5).id == 5

    def test_empty_path_rejected(self):
        with pytest.raises(ValueError):
            Key(())

    def test_incomplete_ancestor_rejected(self):
        with pytest.raises(ValueError):
            Key((("Person", None), ("Pet", 1)))

    def test_is_ancestor_of(self):
        bob = Key((("Person", "Bob"),))
        rex = bob.child("Pet", "Rex")
        assert bob.is_ancestor_of(rex)
        assert not rex.is_ancestor_of(bob)
        assert not bob.is_ancestor_of(bob)
        assert not bob.is_ancestor_of(rex.with_namespace("other"))

    def test_path_string_round_trip(self):
        key = Key((("Per/son", "Bob:1"), ("Pet", 12)), namespace="ns")
        encoded = key.to_path_string()
        assert Key.from_path_string(encoded, "ns") == key

    def test_path_string_keeps_id_types_apart(self):
        as_int = Key((("Person", 42),)).to_path_string()
        as_str = Key((("Person", "x42"),)).to_path_string()
        assert as_int == "Person:i42"
        assert as_str == "Person:sx42"

    def test_path_string_prefix_is_ancestor(self):
        bob = Key((("Person", "Bob"),))
        rex = bob.child("Pet", "Rex")
        assert rex.to_path_string().startswith(bob.to_path_string() + "/")

    def test_incomplete_key_cannot_be_encoded(self):
        with pytest.raises(ValueError):
            Key((("Person", None),)).to_path_string()

    def test_from_flat_path(self):
        key = Key.from_flat_path(["Person", "42", "Pet"])
        assert key.path == (("Person", 42), ("Pet", None))


class TestMakeKey:
    def test_plain_id(self):
        assert make_key("Bob", "Person") == Key((("Person", "Bob"),))

    def test_numeric_string_and_int_address_same_record(self):
        assert make_key("42", "Person") == make_key(42, "Person")

    def test_none_gives_incomplete_key(self):
        assert make_key(None, "Person").is_complete is False

    def test_flat_path_is_taken_verbatim(self):
        key = make_key(["Person", "Bob", "Pet", "Rex"], "Ignored")
        assert key.kind == "Pet"
        assert key.parent == Key((("Person", "Bob"),))

    def test_mapping_keeps_its_namespace(self):
        key = make_key({"path": ["Person", 1], "namespace": "a"}, "Person")
        assert key.namespace == "a"

    def test_explicit_namespace_wins(self):
        key = make_key({"path": ["Person", 1], "namespace": "a"}, "Person", namespace="b")
        assert key.namespace == "b"

    def test_key_passes_through(self):
        key = Key((("Person", "Bob"),))
        assert make_key(key, "Other") is key

    def test_nested_under_parent(self):
        parent = Key((("Person", "Bob"),))
        key = make_key("Rex", "Pet", parent=parent)
        assert key.path == (("Person", "Bob"), ("Pet", "Rex"))
