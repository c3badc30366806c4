"""Persistence Field Compiler

Builds storage-facing field configs. Resolution is permissive: unknown type
tokens pass through untouched and nothing here raises for a field's content.
Membership (``enum``) is enforced only on the validation side and is not
copied. Nested ``schema`` definitions are not expanded either.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dualschema.definition import ArrayShorthand, FieldSpec, SchemaDefinition, parse_definition, parse_field
from dualschema.errors import InvalidDefinitionError
from dualschema.logging import compiler_logger
from dualschema.patterns import EMAIL_PATTERN, pattern_source
from dualschema.resolver import CanonicalType, resolve_persistence_type

from .fields import FormatCheck, PersistenceFieldConfig
from .schema import PersistenceSchema

log = compiler_logger()

COPIED_MODIFIERS = frozenset({
    "required", "unique", "minlength", "maxlength", "min", "max", "default", "ref",
    "select", "sparse", "index", "text", "immutable", "transform", "get", "set",
})

EMAIL_FORMAT_MESSAGE = "Invalid email format"
PATTERN_FORMAT_MESSAGE = "Invalid format"


# ============================================================================
# Options
# ============================================================================

def _mapping(value: Any, label: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidDefinitionError(f"{label} must be a mapping, got {type(value).__name__}")
    return dict(value)


@dataclass(frozen=True, slots=True)
class Middleware:
    """Lifecycle hooks by name; a value is one callable or a sequence of them."""
    pre: Mapping[str, Callable | Sequence[Callable]] = field(default_factory=dict)
    post: Mapping[str, Callable | Sequence[Callable]] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> Middleware:
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise InvalidDefinitionError(f"middleware must be a mapping, got {type(value).__name__}")
        return cls(pre=_mapping(value.get("pre"), "middleware.pre"),
            post=_mapping(value.get("post"), "middleware.post"))


@dataclass(frozen=True, slots=True)
class PersistenceOptions:
    schema_options: Mapping[str, Any] = field(default_factory=dict)
    middleware: Middleware = field(default_factory=Middleware)
    virtuals: Mapping[str, Any] = field(default_factory=dict)
    indexes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> PersistenceOptions:
        """Accept an instance, a mapping with the same keys, or None."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise InvalidDefinitionError(f"persistence_options must be a mapping, got {type(value).__name__}")
        return cls(
            schema_options=_mapping(value.get("schema_options"), "schema_options"),
            middleware=Middleware.coerce(value.get("middleware")),
            virtuals=_mapping(value.get("virtuals"), "virtuals"),
            indexes=_mapping(value.get("indexes"), "indexes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_options": dict(self.schema_options),
            "middleware": {"pre": dict(self.middleware.pre), "post": dict(self.middleware.post)},
            "virtuals": dict(self.virtuals),
            "indexes": dict(self.indexes),
        }


# ============================================================================
# Fields
# ============================================================================

def _as_spec(value: Any) -> FieldSpec | None:
    if isinstance(value, FieldSpec):
        return value
    if isinstance(value, Mapping):
        return FieldSpec.from_raw(value)
    return None


def _array_type(item: FieldSpec, values: dict[str, Any]) -> list[Any]:
    item_type = resolve_persistence_type(item.type)
    if item_type is CanonicalType.OBJECT_ID and item.has("ref"):
        values["ref"] = item.get("ref")
    return [item_type]


def _format_check(name: str, pattern: str | re.Pattern) -> FormatCheck | None:
    source, flags = pattern_source(pattern)
    if not isinstance(source, str):
        log.warning("persistence_pattern_invalid", field=name, error="bytes patterns cannot check text values")
        return None
    try:
        re.compile(source, flags)
    except re.error as exc:
        log.warning("persistence_pattern_invalid", field=name, pattern=source, error=str(exc))
        return None
    return FormatCheck(source, flags, PATTERN_FORMAT_MESSAGE)


def compile_persistence_field(
    name: str,
    spec: FieldSpec | ArrayShorthand | Mapping[str, Any] | Sequence[Any],
) -> PersistenceFieldConfig:
    """Compile one field definition into a PersistenceFieldConfig.

    Modifiers apply in source order. ``email`` and ``regex``/``match`` share
    the single ``validate`` slot, so the later one wins.
    """
    spec = parse_field(spec, name)
    values: dict[str, Any] = {}

    if isinstance(spec, ArrayShorthand):
        values["type"] = _array_type(spec.item, values)
        return PersistenceFieldConfig(**values)

    field_type = resolve_persistence_type(spec.type)
    values["type"] = field_type

    for modifier, value in spec:
        match modifier:
            case "items" if field_type is CanonicalType.ARRAY and (item := _as_spec(value)) is not None:
                values["type"] = _array_type(item, values)
            case "email" if value is True:
                values["validate"] = FormatCheck(EMAIL_PATTERN, 0, EMAIL_FORMAT_MESSAGE)
            case "regex" if isinstance(value, (str, re.Pattern)):
                if (check := _format_check(name, value)) is not None:
                    values["validate"] = check
            case copied if copied in COPIED_MODIFIERS:
                values[copied] = value

    return PersistenceFieldConfig(**values)


# ============================================================================
# Schema
# ============================================================================

def _hooks(value: Callable | Sequence[Callable]) -> list[Callable]:
    return list(value) if isinstance(value, Sequence) and not callable(value) else [value]


def compile_persistence_schema(
    definition: SchemaDefinition,
    persistence_options: PersistenceOptions | Mapping[str, Any] | None = None,
) -> PersistenceSchema:
    """Compile a definition into a PersistenceSchema with hooks, virtuals and indexes."""
    options = PersistenceOptions.coerce(persistence_options)
    fields = {name: compile_persistence_field(name, spec) for name, spec in parse_definition(definition).items()}
    schema = PersistenceSchema(fields, {"timestamps": True, **options.schema_options})

    for hook, fns in options.middleware.pre.items():
        for fn in _hooks(fns):
            schema.pre(hook, fn)
    for hook, fns in options.middleware.post.items():
        for fn in _hooks(fns):
            schema.post(hook, fn)

    for virtual_name, config in options.virtuals.items():
        if callable(config):
            schema.virtual(virtual_name).get(config)
        elif isinstance(config, Mapping):
            virtual = schema.virtual(virtual_name)
            if config.get("get"):
                virtual.get(config["get"])
            if config.get("set"):
                virtual.set(config["set"])

    for path, index_config in options.indexes.items():
        schema.index(path, index_config)

    log.debug("persistence_schema_compiled", fields=len(fields), virtuals=len(schema.virtuals),
        indexes=len(schema.indexes))
    return schema
