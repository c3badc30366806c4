"""Field Definitions

Parses the raw declarative field map into immutable FieldSpec values. A raw
field is either a mapping (``{"type": "String", "required": True, ...}``) or
the array shorthand, a sequence whose first element describes the items
(``[{"type": "String", "enum": ["a", "b"]}]``).

Modifier keys keep their source order; both compilers iterate them in that
order. Synonymous spellings collapse to one canonical modifier name here so
each compiler has exactly one handler per modifier.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Iterator

from dualschema.errors import InvalidDefinitionError
from dualschema.resolver import CanonicalType, TypeToken

MODIFIER_SYNONYMS: dict[str, str] = {
    "minLength": "minlength",
    "maxLength": "maxlength",
    "match": "regex",
}

SchemaDefinition = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One field's declarative definition: a type token plus ordered modifiers."""
    type: TypeToken = None
    modifiers: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def from_raw(cls, raw: Mapping[Any, Any]) -> FieldSpec:
        modifiers = tuple(
            (MODIFIER_SYNONYMS.get(key, key), value)
            for key, value in raw.items()
            if key != "type"
        )
        return cls(type=raw.get("type"), modifiers=modifiers)

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.modifiers)

    def has(self, name: str) -> bool:
        return any(key == name for key, _ in self.modifiers)

    def get(self, name: str, default: Any = None) -> Any:
        """Value of the last occurrence of a modifier."""
        value = default
        for key, candidate in self.modifiers:
            if key == name:
                value = candidate
        return value

    @property
    def items(self) -> FieldSpec | None:
        raw = self.get("items")
        if isinstance(raw, FieldSpec):
            return raw
        if isinstance(raw, Mapping):
            return FieldSpec.from_raw(raw)
        return None

    @property
    def schema(self) -> SchemaDefinition | None:
        raw = self.get("schema")
        return raw if isinstance(raw, Mapping) else None


@dataclass(frozen=True, slots=True)
class ArrayShorthand:
    """Array field declared as a sequence; ``item`` describes its elements."""
    item: FieldSpec


def parse_field(raw: Any, field_name: str | None = None) -> FieldSpec | ArrayShorthand:
    """Parse one raw field definition."""
    if isinstance(raw, (FieldSpec, ArrayShorthand)):
        return raw
    if isinstance(raw, Mapping):
        return FieldSpec.from_raw(raw)
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        first = raw[0] if raw else {}
        item = FieldSpec.from_raw(first) if isinstance(first, Mapping) else FieldSpec(type=first)
        if item.type is None:
            item = replace(item, type=CanonicalType.STRING)
        return ArrayShorthand(item=item)
    raise InvalidDefinitionError(
        f"Field '{field_name}' must be defined by a mapping or a sequence, got {type(raw).__name__}",
        field_name,
    )


def parse_definition(definition: Any) -> dict[str, FieldSpec | ArrayShorthand]:
    """Parse a whole schema definition, preserving field order."""
    if not isinstance(definition, Mapping):
        raise InvalidDefinitionError(
            f"Schema definition must be a mapping, got {type(definition).__name__}"
        )
    fields: dict[str, FieldSpec | ArrayShorthand] = {}
    for name, raw in definition.items():
        if not isinstance(name, str):
            raise InvalidDefinitionError(f"Field names must be strings, got {name!r}")
        fields[name] = parse_field(raw, name)
    return fields
