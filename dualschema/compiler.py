"""Schema Pair Compilation

``compile_schemas`` turns one declarative definition into a persistence schema
and a validation schema. The two compilers run independently per field; the
pair is cached under a content signature of the definition and options.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from dualschema.cache import SchemaCache, content_signature, get_default_cache
from dualschema.definition import SchemaDefinition
from dualschema.errors import CompilationError
from dualschema.logging import compiler_logger
from dualschema.persistence import PersistenceOptions, PersistenceSchema, compile_persistence_schema
from dualschema.validation import ValidationSchema, compile_validation_schema

log = compiler_logger()


@dataclass(frozen=True, slots=True)
class CompiledSchemaPair:
    persistence_schema: PersistenceSchema
    validation_schema: ValidationSchema

    def __iter__(self) -> Iterator[Any]:
        yield self.persistence_schema
        yield self.validation_schema


def _compile_pair(
    definition: SchemaDefinition,
    persistence_options: PersistenceOptions,
    strict_mode: bool,
    custom_messages: Mapping[str, str],
) -> CompiledSchemaPair:
    try:
        validation_schema = compile_validation_schema(
            definition, strict_mode=strict_mode, custom_messages=custom_messages)
        persistence_schema = compile_persistence_schema(definition, persistence_options)
    except CompilationError as exc:
        log.warning("schema_compilation_failed", code=exc.code.name, error=exc.error.message)
        raise
    log.info("schema_compiled", fields=len(validation_schema.field_names), strict=strict_mode)
    return CompiledSchemaPair(persistence_schema, validation_schema)


def compile_schemas(
    definition: SchemaDefinition,
    *,
    enable_cache: bool = True,
    persistence_options: PersistenceOptions | Mapping[str, Any] | None = None,
    strict_mode: bool = False,
    custom_messages: Mapping[str, str] | None = None,
    cache: SchemaCache | None = None,
) -> CompiledSchemaPair:
    """Compile a definition into a (persistence, validation) schema pair.

    Identical definitions with identical options return the same cached pair
    unless ``enable_cache`` is False. ``cache`` overrides the process-wide
    default cache.

    Raises:
        UnsupportedTypeError: a field's type token is unknown to the validation side.
        InvalidDefinitionError: the definition or an option has an unusable shape.
    """
    options = PersistenceOptions.coerce(persistence_options)
    messages = dict(custom_messages or {})

    def compile_pair() -> CompiledSchemaPair:
        return _compile_pair(definition, options, strict_mode, messages)

    if not enable_cache:
        return compile_pair()

    key = content_signature(definition, {
        "persistence_options": options.to_dict(),
        "strict_mode": strict_mode,
        "custom_messages": messages,
    })
    with structlog.contextvars.bound_contextvars(schema_key=key[:12]):
        return (cache if cache is not None else get_default_cache()).get_or_compile(key, compile_pair)
