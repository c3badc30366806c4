"""Validation Side

Field definitions compile to a ValidationRule tree, which lowers to pydantic
models at the application boundary.

Usage:
    from dualschema.validation import compile_validation_schema, normalize_errors

    schema = compile_validation_schema(definition, custom_messages={"age.min": "Too young"})
    result = schema.safe_parse(payload)
    if result.is_err():
        errors = [e.to_dict() for e in normalize_errors(result.unwrap_err())]
"""
from .compiler import ValidationOptions, compile_validation_field, compile_validation_rules
from .errors import NormalizedError, ValidationError, ValidationIssue, normalize_errors
from .refinements import (
    CaseFold,
    EmailFormat,
    ItemCountBound,
    LengthBound,
    Membership,
    NumericBound,
    ObjectIdFormat,
    PatternMatch,
    Refinement,
    ValidationResult,
)
from .rules import MISSING, RuleKind, ValidationRule
from .schema import ValidationSchema, compile_validation_schema

__all__ = [
    "CaseFold",
    "EmailFormat",
    "ItemCountBound",
    "LengthBound",
    "MISSING",
    "Membership",
    "NormalizedError",
    "NumericBound",
    "ObjectIdFormat",
    "PatternMatch",
    "Refinement",
    "RuleKind",
    "ValidationError",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationResult",
    "ValidationRule",
    "ValidationSchema",
    "compile_validation_field",
    "compile_validation_rules",
    "compile_validation_schema",
    "normalize_errors",
]
