"""Type Resolution

Normalizes a raw type token into one canonical type tag. A token is either a
well-known tag (a CanonicalType member or a Python type constant, matched by
identity) or an alias string (matched case-insensitively). Resolution goes
through the two lookup tables below and nothing else.

The two compilers disagree on unknown tokens: the validation side raises,
the persistence side passes the token through untouched.
"""
from __future__ import annotations

from collections.abc import Hashable, Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

from bson import ObjectId

from dualschema.errors import UnsupportedTypeError


class CanonicalType(str, Enum):
    """The closed set of type categories every token resolves to."""
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    ARRAY = "Array"
    OBJECT = "Object"
    OBJECT_ID = "ObjectId"
    MIXED = "Mixed"
    MAP = "Map"


TypeToken = Union[CanonicalType, type, str, Any]

TYPE_CONSTANTS: dict[Any, CanonicalType] = {
    str: CanonicalType.STRING,
    int: CanonicalType.NUMBER,
    float: CanonicalType.NUMBER,
    bool: CanonicalType.BOOLEAN,
    datetime: CanonicalType.DATE,
    date: CanonicalType.DATE,
    list: CanonicalType.ARRAY,
    dict: CanonicalType.OBJECT,
    ObjectId: CanonicalType.OBJECT_ID,
    Any: CanonicalType.MIXED,
    object: CanonicalType.MIXED,
    Mapping: CanonicalType.MAP,
}

TYPE_ALIASES: dict[str, CanonicalType] = {
    "string": CanonicalType.STRING,
    "number": CanonicalType.NUMBER,
    "boolean": CanonicalType.BOOLEAN,
    "date": CanonicalType.DATE,
    "array": CanonicalType.ARRAY,
    "objectid": CanonicalType.OBJECT_ID,
    "object_id": CanonicalType.OBJECT_ID,
    "mixed": CanonicalType.MIXED,
    "object": CanonicalType.OBJECT,
    "map": CanonicalType.MAP,
}


def lookup_type(token: TypeToken) -> CanonicalType | None:
    """Resolve a token, returning None when it matches neither table."""
    if isinstance(token, CanonicalType):
        return token
    if isinstance(token, str):
        return TYPE_ALIASES.get(token.lower())
    if isinstance(token, Hashable):
        try:
            return TYPE_CONSTANTS.get(token)
        except TypeError:
            # Hashable by type but not by value, e.g. a tuple holding a list.
            return None
    return None


def resolve_type(token: TypeToken, field_name: str | None = None) -> CanonicalType:
    """Resolve a token for the validation compiler.

    Raises:
        UnsupportedTypeError: the token matches no constant or alias.
    """
    if (resolved := lookup_type(token)) is None:
        raise UnsupportedTypeError(token, field_name)
    return resolved


def resolve_persistence_type(token: TypeToken) -> CanonicalType | Any:
    """Resolve a token for the persistence compiler.

    Unknown tokens come back unchanged so the storage layer receives whatever
    was declared. Object has no structural meaning in storage and lowers to
    Mixed.
    """
    if (resolved := lookup_type(token)) is None:
        return token
    return CanonicalType.MIXED if resolved is CanonicalType.OBJECT else resolved
