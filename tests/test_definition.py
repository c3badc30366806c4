"""Tests for dualschema.definition."""

import pytest

from dualschema.definition import ArrayShorthand, FieldSpec, parse_definition, parse_field
from dualschema.errors import ErrorCode, InvalidDefinitionError
from dualschema.resolver import CanonicalType


class TestFieldSpec:
    """FieldSpec keeps modifiers in source order under canonical names."""

    def test_modifiers_keep_source_order(self):
        spec = FieldSpec.from_raw({"type": "String", "required": True, "maxlength": 5, "minlength": 1})
        assert [name for name, _ in spec] == ["required", "maxlength", "minlength"]
        assert spec.type == "String"

    def test_synonyms_are_canonicalized(self):
        spec = FieldSpec.from_raw({"type": "String", "minLength": 2, "maxLength": 9, "match": "^a"})
        assert list(spec) == [("minlength", 2), ("maxlength", 9), ("regex", "^a")]

    def test_get_returns_last_occurrence(self):
        spec = FieldSpec(type="String", modifiers=(("regex", "^a"), ("regex", "^b")))
        assert spec.get("regex") == "^b"
        assert spec.get("missing", 42) == 42

    def test_items_property_parses_mapping(self):
        spec = FieldSpec.from_raw({"type": "Array", "items": {"type": "Number"}})
        assert spec.items == FieldSpec(type="Number")

    def test_schema_property_only_for_mappings(self):
        assert FieldSpec.from_raw({"type": "Object", "schema": "nope"}).schema is None
        nested = {"city": {"type": "String"}}
        assert FieldSpec.from_raw({"type": "Object", "schema": nested}).schema is nested

    def test_missing_type_is_none(self):
        assert FieldSpec.from_raw({"required": True}).type is None


class TestArrayShorthand:
    """A sequence declares an array of its first element."""

    def test_mapping_element(self):
        parsed = parse_field([{"type": "String", "enum": ["a", "b"]}], "tags")
        assert isinstance(parsed, ArrayShorthand)
        assert parsed.item.type == "String"
        assert parsed.item.get("enum") == ["a", "b"]

    def test_empty_sequence_defaults_to_string_items(self):
        assert parse_field([], "tags").item.type is CanonicalType.STRING

    def test_element_without_type_defaults_to_string(self):
        assert parse_field([{"enum": ["x"]}], "tags").item.type is CanonicalType.STRING

    def test_bare_type_token_element(self):
        assert parse_field([int], "scores").item.type is int


class TestInvalidDefinitions:
    """Malformed definitions raise InvalidDefinitionError."""

    def test_scalar_field_definition(self):
        with pytest.raises(InvalidDefinitionError) as exc_info:
            parse_field("String", "name")
        assert exc_info.value.code is ErrorCode.E2031_INVALID_DEFINITION
        assert exc_info.value.field_name == "name"

    def test_definition_must_be_mapping(self):
        with pytest.raises(InvalidDefinitionError):
            parse_definition([("name", {"type": "String"})])

    def test_field_names_must_be_strings(self):
        with pytest.raises(InvalidDefinitionError):
            parse_definition({1: {"type": "String"}})

    def test_definition_order_is_preserved(self):
        parsed = parse_definition({"b": {"type": "String"}, "a": {"type": "Number"}})
        assert list(parsed) == ["b", "a"]
