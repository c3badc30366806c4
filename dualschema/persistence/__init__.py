"""Persistence Side

Storage-facing field configs and schema for MongoDB.
"""
from .compiler import (
    Middleware,
    PersistenceOptions,
    compile_persistence_field,
    compile_persistence_schema,
)
from .fields import UNSET, FormatCheck, PersistenceFieldConfig
from .schema import PersistenceSchema, VirtualField

__all__ = [
    "FormatCheck",
    "Middleware",
    "PersistenceFieldConfig",
    "PersistenceOptions",
    "PersistenceSchema",
    "UNSET",
    "VirtualField",
    "compile_persistence_field",
    "compile_persistence_schema",
]
