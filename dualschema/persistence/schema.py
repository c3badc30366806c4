"""Persistence Schema

A storage-side schema: field configs plus schema options, lifecycle hooks,
virtual fields and index declarations. It exports what a MongoDB collection
needs directly: a ``$jsonSchema`` collection validator and pymongo
``IndexModel`` specs.

Usage:
    schema = compile_persistence_schema(definition, {"indexes": {"email": {"unique": True}}})
    db.create_collection("users", validator=schema.to_json_schema())
    db.users.create_indexes(schema.index_models())
"""
from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pymongo import ASCENDING, TEXT, IndexModel

from dualschema.resolver import CanonicalType

from .fields import FormatCheck, PersistenceFieldConfig

HookPhase = Literal["pre", "post"]

BSON_TYPES: dict[CanonicalType, str] = {
    CanonicalType.STRING: "string",
    CanonicalType.NUMBER: "number",
    CanonicalType.BOOLEAN: "bool",
    CanonicalType.DATE: "date",
    CanonicalType.ARRAY: "array",
    CanonicalType.OBJECT: "object",
    CanonicalType.OBJECT_ID: "objectId",
    CanonicalType.MAP: "object",
}

DEFAULT_TIMESTAMP_FIELDS = {"createdAt": "createdAt", "updatedAt": "updatedAt"}

_INLINE_FLAGS = ((re.IGNORECASE, "i"), (re.MULTILINE, "m"), (re.DOTALL, "s"), (re.VERBOSE, "x"))


@dataclass
class VirtualField:
    """Computed, unstored field; ``get``/``set`` register accessors and chain."""
    name: str
    getters: list[Callable[[Any], Any]] = field(default_factory=list)
    setters: list[Callable[[Any, Any], Any]] = field(default_factory=list)

    def get(self, fn: Callable[[Any], Any]) -> VirtualField:
        self.getters.append(fn)
        return self

    def set(self, fn: Callable[[Any, Any], Any]) -> VirtualField:
        self.setters.append(fn)
        return self

    def resolve(self, document: Any) -> Any:
        """Value of the last registered getter, or None without getters."""
        value = None
        for getter in self.getters:
            value = getter(document)
        return value

    def assign(self, document: Any, value: Any) -> None:
        for setter in self.setters:
            setter(document, value)


def _bson_type(declared: Any) -> str | None:
    return BSON_TYPES.get(declared) if isinstance(declared, CanonicalType) else None


def _pattern(check: FormatCheck) -> str:
    inline = "".join(letter for flag, letter in _INLINE_FLAGS if check.flags & flag)
    return f"(?{inline}){check.pattern}" if inline else check.pattern


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _direction(value: Any) -> int | str | None:
    if value is True:
        return ASCENDING
    if isinstance(value, int) and not isinstance(value, bool) and value in (1, -1):
        return value
    if isinstance(value, str) and value:
        return value
    return None


class PersistenceSchema:
    """Compiled storage schema for one definition."""

    def __init__(self, fields: Mapping[str, PersistenceFieldConfig], options: Mapping[str, Any] | None = None):
        self.fields: dict[str, PersistenceFieldConfig] = dict(fields)
        self.options: dict[str, Any] = dict(options or {})
        self.hooks: dict[HookPhase, dict[str, list[Callable]]] = {"pre": {}, "post": {}}
        self.virtuals: dict[str, VirtualField] = {}
        self.indexes: list[tuple[Any, Any]] = []

    @property
    def field_names(self) -> list[str]:
        return list(self.fields)

    def path(self, name: str) -> PersistenceFieldConfig | None:
        return self.fields.get(name)

    # ------------------------------------------------------------------------
    # Hooks, virtuals, indexes
    # ------------------------------------------------------------------------

    def pre(self, hook: str, fn: Callable) -> PersistenceSchema:
        self.hooks["pre"].setdefault(hook, []).append(fn)
        return self

    def post(self, hook: str, fn: Callable) -> PersistenceSchema:
        self.hooks["post"].setdefault(hook, []).append(fn)
        return self

    def hooks_for(self, phase: HookPhase, hook: str) -> list[Callable]:
        return list(self.hooks[phase].get(hook, ()))

    def run_hooks(self, phase: HookPhase, hook: str, *args: Any, **kwargs: Any) -> list[Any]:
        """Call the hooks registered for ``phase``/``hook`` in registration order."""
        return [fn(*args, **kwargs) for fn in self.hooks_for(phase, hook)]

    def virtual(self, name: str) -> VirtualField:
        return self.virtuals.setdefault(name, VirtualField(name))

    def index(self, fields: Any, options: Any = None) -> PersistenceSchema:
        """Declare an index; arguments are kept as given."""
        self.indexes.append((fields, options))
        return self

    # ------------------------------------------------------------------------
    # MongoDB exports
    # ------------------------------------------------------------------------

    def timestamp_fields(self) -> list[str]:
        setting = self.options.get("timestamps")
        if not setting:
            return []
        if setting is True:
            return list(DEFAULT_TIMESTAMP_FIELDS.values())
        if isinstance(setting, Mapping):
            names = []
            for key, default in DEFAULT_TIMESTAMP_FIELDS.items():
                custom = setting.get(key, True)
                if custom is True:
                    names.append(default)
                elif isinstance(custom, str) and custom:
                    names.append(custom)
            return names
        return []

    def _property(self, config: PersistenceFieldConfig) -> dict[str, Any]:
        prop: dict[str, Any] = {}
        if config.is_array:
            prop["bsonType"] = "array"
            if item := _bson_type(config.item_type):
                prop["items"] = {"bsonType": item}
        elif bson_type := _bson_type(config.type):
            prop["bsonType"] = bson_type

        if "bsonType" in prop and config.required is not True:
            prop["bsonType"] = [prop["bsonType"], "null"]

        if _is_number(config.minlength):
            prop["minLength"] = config.minlength
        if _is_number(config.maxlength):
            prop["maxLength"] = config.maxlength
        if _is_number(config.min):
            prop["minimum"] = config.min
        if _is_number(config.max):
            prop["maximum"] = config.max
        if isinstance(config.validate, FormatCheck):
            prop["pattern"] = _pattern(config.validate)
            prop["description"] = config.validate.message
        return prop

    def to_json_schema(self) -> dict[str, Any]:
        """``$jsonSchema`` collection validator for the declared fields."""
        properties = {name: self._property(config) for name, config in self.fields.items()}
        for name in self.timestamp_fields():
            properties.setdefault(name, {"bsonType": "date"})

        schema: dict[str, Any] = {"bsonType": "object", "properties": properties}
        if required := [name for name, config in self.fields.items() if config.required is True]:
            schema["required"] = required
        return {"$jsonSchema": schema}

    def index_models(self) -> list[IndexModel]:
        """Index specs from field hints (text, unique, index, sparse) and explicit declarations."""
        models: list[IndexModel] = []
        for name, config in self.fields.items():
            if config.text is True:
                models.append(IndexModel([(name, TEXT)]))
                continue
            direction = _direction(config.index)
            if direction is None and config.unique is not True:
                continue
            kwargs = {flag: True for flag in ("unique", "sparse") if getattr(config, flag) is True}
            models.append(IndexModel([(name, direction or ASCENDING)], **kwargs))

        for fields, options in self.indexes:
            models.append(self._explicit_index(fields, options))
        return models

    @staticmethod
    def _explicit_index(fields: Any, options: Any) -> IndexModel:
        if isinstance(fields, Mapping):
            keys = list(fields.items())
            kwargs = dict(options) if isinstance(options, Mapping) else {}
        elif isinstance(options, Mapping):
            kwargs = dict(options)
            direction = _direction(kwargs.pop("direction", True))
            keys = [(fields, direction or ASCENDING)]
        else:
            keys = [(fields, _direction(options) or ASCENDING)]
            kwargs = {}
        return IndexModel(keys, **kwargs)

    def __repr__(self) -> str:
        return (f"PersistenceSchema(fields={self.field_names!r}, options={self.options!r}, "
            f"virtuals={list(self.virtuals)!r}, indexes={len(self.indexes)})")
