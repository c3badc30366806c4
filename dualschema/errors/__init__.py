"""Error Handling

Typed errors shared by both compilers and the validation runtime.

Usage:
    from dualschema.errors import CompilationError, Ok, Err

    try:
        pair = compile_schemas(definition)
    except CompilationError as exc:
        log.error("schema_invalid", **exc.error.to_dict()["error"])
"""
from .types import (
    AppError,
    CompilationError,
    Err,
    ErrorCode,
    InvalidDefinitionError,
    Ok,
    Result,
    UnsupportedTypeError,
)

__all__ = [
    "AppError",
    "CompilationError",
    "Err",
    "ErrorCode",
    "InvalidDefinitionError",
    "Ok",
    "Result",
    "UnsupportedTypeError",
]
