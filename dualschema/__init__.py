"""dualschema

Compile one declarative field map into a MongoDB persistence schema and a
pydantic-backed validation schema.

Usage:
    from dualschema import compile_schemas, normalize_errors

    pair = compile_schemas({
        "email": {"type": "String", "required": True, "email": True},
        "role": {"type": "String", "enum": ["admin", "user"], "default": "user"},
        "tags": {"type": "Array", "items": {"type": "String"}, "max": 5},
    })
    result = pair.validation_schema.safe_parse(payload)
    if result.is_err():
        errors = [e.to_dict() for e in normalize_errors(result.unwrap_err())]
    validator = pair.persistence_schema.to_json_schema()
"""
from .cache import BoundedSchemaCache, SchemaCache, content_signature, get_default_cache
from .compiler import CompiledSchemaPair, compile_schemas
from .definition import ArrayShorthand, FieldSpec, parse_definition, parse_field
from .errors import (
    AppError,
    CompilationError,
    Err,
    ErrorCode,
    InvalidDefinitionError,
    Ok,
    Result,
    UnsupportedTypeError,
)
from .messages import synthesize_message
from .persistence import (
    UNSET,
    PersistenceFieldConfig,
    PersistenceOptions,
    PersistenceSchema,
    compile_persistence_field,
    compile_persistence_schema,
)
from .resolver import CanonicalType, resolve_persistence_type, resolve_type
from .validation import (
    NormalizedError,
    ValidationError,
    ValidationRule,
    ValidationSchema,
    compile_validation_field,
    compile_validation_schema,
    normalize_errors,
)

__version__ = "0.1.0"

__all__ = [
    "AppError",
    "ArrayShorthand",
    "BoundedSchemaCache",
    "CanonicalType",
    "CompilationError",
    "CompiledSchemaPair",
    "Err",
    "ErrorCode",
    "FieldSpec",
    "InvalidDefinitionError",
    "NormalizedError",
    "Ok",
    "PersistenceFieldConfig",
    "PersistenceOptions",
    "PersistenceSchema",
    "Result",
    "SchemaCache",
    "UNSET",
    "UnsupportedTypeError",
    "ValidationError",
    "ValidationRule",
    "ValidationSchema",
    "compile_persistence_field",
    "compile_persistence_schema",
    "compile_schemas",
    "compile_validation_field",
    "compile_validation_schema",
    "content_signature",
    "get_default_cache",
    "normalize_errors",
    "parse_definition",
    "parse_field",
    "resolve_persistence_type",
    "resolve_type",
    "synthesize_message",
]
