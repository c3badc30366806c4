"""Tests for dualschema.compile_schemas."""

import gc

import pytest

from dualschema import (
    CompiledSchemaPair,
    PersistenceSchema,
    UnsupportedTypeError,
    ValidationSchema,
    compile_schemas,
    normalize_errors,
)
from dualschema.cache import get_default_cache
from dualschema.definition import FieldSpec


class TestCaching:
    """Identical inputs share one compiled pair."""

    def test_same_definition_returns_same_pair(self, schema_cache, user_definition):
        first = compile_schemas(user_definition, cache=schema_cache)
        second = compile_schemas(dict(user_definition), cache=schema_cache)
        assert first is second
        assert first.validation_schema is second.validation_schema
        assert schema_cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_default_cache_is_used(self):
        definition = {"name": {"type": "String"}}
        assert compile_schemas(definition) is compile_schemas(definition)
        assert len(get_default_cache()) == 1

    def test_cache_disabled(self, schema_cache):
        definition = {"name": {"type": "String"}}
        first = compile_schemas(definition, enable_cache=False, cache=schema_cache)
        second = compile_schemas(definition, enable_cache=False, cache=schema_cache)
        assert first is not second
        assert len(schema_cache) == 0

    @pytest.mark.parametrize(
        "options",
        [
            {"strict_mode": True},
            {"custom_messages": {"name.required": "Name please"}},
            {"persistence_options": {"schema_options": {"timestamps": False}}},
        ],
    )
    def test_options_are_part_of_the_key(self, schema_cache, options):
        definition = {"name": {"type": "String", "required": True}}
        baseline = compile_schemas(definition, cache=schema_cache)
        assert compile_schemas(definition, cache=schema_cache, **options) is not baseline

    def test_field_order_is_part_of_the_key(self, schema_cache):
        first = compile_schemas({"a": {"type": "String"}, "b": {"type": "Number"}}, cache=schema_cache)
        second = compile_schemas({"b": {"type": "Number"}, "a": {"type": "String"}}, cache=schema_cache)
        assert first is not second

    def test_field_spec_definitions_never_share_stale_pairs(self, schema_cache):
        for index in range(200):
            token = "String" if index % 2 == 0 else "Number"
            pair = compile_schemas({"a": FieldSpec(type=token)}, cache=schema_cache)
            assert pair.persistence_schema.path("a").type.value == token
            gc.collect()
        assert len(schema_cache) == 2

    def test_failures_are_not_cached(self, schema_cache):
        with pytest.raises(UnsupportedTypeError):
            compile_schemas({"price": {"type": "Decimal128"}}, cache=schema_cache)
        assert len(schema_cache) == 0


class TestPair:
    """Both halves compile from the same definition."""

    def test_pair_unpacks(self):
        pair = compile_schemas({"name": {"type": "String"}}, enable_cache=False)
        persistence, validation = pair
        assert isinstance(pair, CompiledSchemaPair)
        assert isinstance(persistence, PersistenceSchema)
        assert isinstance(validation, ValidationSchema)

    def test_unknown_type_names_the_field(self):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            compile_schemas({"price": {"type": "Decimal128"}}, enable_cache=False)
        assert exc_info.value.error.metadata["field"] == "price"

    def test_user_definition(self, user_definition, valid_user):
        persistence, validation = compile_schemas(user_definition, enable_cache=False)

        assert persistence.path("email").unique is True
        assert persistence.options == {"timestamps": True}
        assert "role" in persistence.field_names

        data = validation.parse(valid_user)
        assert data["name"] == "John Doe"
        assert data["createdAt"] is not None
        assert "userId" not in data

    def test_email_failure_normalizes(self):
        _, validation = compile_schemas({"email": {"type": "String", "email": True}}, enable_cache=False)
        (error,) = normalize_errors(validation.safe_parse({"email": "nope"}).unwrap_err())
        assert (error.field, error.code, error.type) == ("email", "invalid_format", "email")

    def test_array_bound_failure(self):
        _, validation = compile_schemas(
            {"tags": {"type": "Array", "items": {"type": "String"}, "max": 2}}, enable_cache=False
        )
        (error,) = normalize_errors(validation.safe_parse({"tags": ["a", "b", "c"]}).unwrap_err())
        assert (error.field, error.code) == ("tags", "too_big")

    def test_strict_mode_rejects_unknown_keys(self):
        _, validation = compile_schemas({"name": {"type": "String"}}, strict_mode=True, enable_cache=False)
        (error,) = normalize_errors(validation.safe_parse({"name": "a", "extra": 1}).unwrap_err())
        assert (error.field, error.code) == ("extra", "unrecognized_keys")
