"""Tests for dualschema.resolver."""

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import pytest
from bson import ObjectId

from dualschema.errors import ErrorCode, UnsupportedTypeError
from dualschema.resolver import CanonicalType, lookup_type, resolve_persistence_type, resolve_type


class Decimal128Token:
    """Stand-in for a storage type the resolver does not know."""


class TestResolveAliases:
    """String aliases resolve case-insensitively."""

    @pytest.mark.parametrize("token", ["string", "String", "STRING", "sTrInG"])
    def test_string_alias_any_case(self, token):
        assert resolve_type(token) is CanonicalType.STRING

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("number", CanonicalType.NUMBER),
            ("Boolean", CanonicalType.BOOLEAN),
            ("DATE", CanonicalType.DATE),
            ("Array", CanonicalType.ARRAY),
            ("ObjectId", CanonicalType.OBJECT_ID),
            ("object_id", CanonicalType.OBJECT_ID),
            ("Mixed", CanonicalType.MIXED),
            ("Object", CanonicalType.OBJECT),
            ("map", CanonicalType.MAP),
        ],
    )
    def test_known_aliases(self, token, expected):
        assert resolve_type(token) is expected

    def test_canonical_member_resolves_to_itself(self):
        for member in CanonicalType:
            assert resolve_type(member) is member


class TestResolveConstants:
    """Python type constants resolve by identity."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            (str, CanonicalType.STRING),
            (int, CanonicalType.NUMBER),
            (float, CanonicalType.NUMBER),
            (bool, CanonicalType.BOOLEAN),
            (datetime, CanonicalType.DATE),
            (date, CanonicalType.DATE),
            (list, CanonicalType.ARRAY),
            (dict, CanonicalType.OBJECT),
            (ObjectId, CanonicalType.OBJECT_ID),
            (Any, CanonicalType.MIXED),
            (object, CanonicalType.MIXED),
            (Mapping, CanonicalType.MAP),
        ],
    )
    def test_constants(self, token, expected):
        assert resolve_type(token) is expected

    def test_resolution_is_deterministic(self):
        assert {resolve_type("Number") for _ in range(10)} == {CanonicalType.NUMBER}


class TestUnsupportedTypes:
    """Validation-side resolution rejects unknown tokens."""

    def test_unknown_alias_raises_with_token_in_message(self):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            resolve_type("Decimal128", "price")
        assert "Decimal128" in str(exc_info.value)
        assert "price" in str(exc_info.value)
        assert exc_info.value.code is ErrorCode.E2030_UNSUPPORTED_TYPE

    def test_missing_type_raises(self):
        with pytest.raises(UnsupportedTypeError):
            resolve_type(None)

    def test_unknown_class_raises(self):
        with pytest.raises(UnsupportedTypeError):
            resolve_type(Decimal128Token)

    def test_unhashable_token_is_unknown(self):
        assert lookup_type(["String"]) is None
        assert lookup_type((["String"],)) is None


class TestPersistenceResolution:
    """Persistence-side resolution is permissive."""

    def test_unknown_alias_passes_through(self):
        assert resolve_persistence_type("Decimal128") == "Decimal128"

    def test_unknown_class_passes_through_by_identity(self):
        assert resolve_persistence_type(Decimal128Token) is Decimal128Token

    def test_object_lowers_to_mixed(self):
        assert resolve_persistence_type("object") is CanonicalType.MIXED
        assert resolve_persistence_type(dict) is CanonicalType.MIXED

    def test_known_types_match_validation_side(self):
        for token in ("String", "number", bool, datetime, "ObjectId", "Map"):
            assert resolve_persistence_type(token) is resolve_type(token)
