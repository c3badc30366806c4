"""Validation Refinements

Atomic, immutable checks attached to a ValidationRule. Each refinement
validates one constraint and reports a ValidationResult; a refinement may also
transform the value before checking it (case folding). Refinements know
nothing about the runtime that executes them.

Features:
- Frozen dataclass refinements
- Issue codes shared with the error normalizer (too_small, too_big,
  invalid_format, invalid_value)
- JSON Schema hints for documentation output
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from bson import ObjectId

from dualschema.errors import ErrorCode
from dualschema.patterns import EMAIL_PATTERN, OBJECT_ID_PATTERN


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of a refinement check."""
    is_valid: bool
    error_message: str | None = None
    error_code: ErrorCode | None = None
    constraint: str | None = None
    expected: Any = None
    format: str | None = None

    @classmethod
    def valid(cls) -> ValidationResult: return cls(is_valid=True)

    @classmethod
    def invalid(cls, message: str, code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC, *,
                constraint: str = "custom", expected: Any = None, format: str | None = None) -> ValidationResult:
        return cls(is_valid=False, error_message=message, error_code=code, constraint=constraint,
            expected=expected, format=format)

    def to_dict(self) -> dict[str, Any]:
        if self.is_valid: return {"valid": True}
        return {"valid": False, "message": self.error_message, "code": self.constraint,
            "error_code": self.error_code.name if self.error_code else None,
            "expected": self.expected, "format": self.format}


def _type_mismatch(expected: str, value: Any) -> ValidationResult:
    return ValidationResult.invalid(f"Expected {expected}, got {type(value).__name__}",
        ErrorCode.E2004_INVALID_TYPE, constraint="invalid_type", expected=expected)


class Refinement(ABC):
    """Base class for refinements."""

    @abstractmethod
    def validate(self, value: Any) -> ValidationResult:
        """Check a value. Returns ValidationResult."""

    @property
    @abstractmethod
    def constraint_name(self) -> str:
        """Short constraint name for logs and error context."""

    def transform(self, value: Any) -> Any:
        """Value handed to ``validate`` and to subsequent refinements."""
        return value

    def json_schema_hints(self) -> dict[str, Any]:
        return {}

    def __call__(self, value: Any) -> ValidationResult: return self.validate(value)


# ============================================================================
# Bounds
# ============================================================================

@dataclass(frozen=True, slots=True)
class LengthBound(Refinement):
    """String length bound; exactly one of the limits is normally set."""
    min_length: int | None = None
    max_length: int | None = None
    message: str = ""

    @property
    def constraint_name(self) -> str:
        return f"minlength[{self.min_length}]" if self.min_length is not None else f"maxlength[{self.max_length}]"

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return _type_mismatch("string", value)
        if self.min_length is not None and len(value) < self.min_length:
            return ValidationResult.invalid(self.message, ErrorCode.E2003_OUT_OF_RANGE,
                constraint="too_small", expected="string")
        if self.max_length is not None and len(value) > self.max_length:
            return ValidationResult.invalid(self.message, ErrorCode.E2003_OUT_OF_RANGE,
                constraint="too_big", expected="string")
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        if self.min_length is not None: return {"minLength": self.min_length}
        return {"maxLength": self.max_length}


@dataclass(frozen=True, slots=True)
class NumericBound(Refinement):
    """Inclusive numeric bound."""
    minimum: float | int | None = None
    maximum: float | int | None = None
    message: str = ""

    @property
    def constraint_name(self) -> str:
        return f"min[{self.minimum}]" if self.minimum is not None else f"max[{self.maximum}]"

    def validate(self, value: Any) -> ValidationResult:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return _type_mismatch("number", value)
        if self.minimum is not None and value < self.minimum:
            return ValidationResult.invalid(self.message, ErrorCode.E2003_OUT_OF_RANGE,
                constraint="too_small", expected="number")
        if self.maximum is not None and value > self.maximum:
            return ValidationResult.invalid(self.message, ErrorCode.E2003_OUT_OF_RANGE,
                constraint="too_big", expected="number")
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        if self.minimum is not None: return {"minimum": self.minimum}
        return {"maximum": self.maximum}


@dataclass(frozen=True, slots=True)
class ItemCountBound(Refinement):
    """Array length bound."""
    min_items: int | None = None
    max_items: int | None = None
    message: str = ""

    @property
    def constraint_name(self) -> str:
        return f"min_items[{self.min_items}]" if self.min_items is not None else f"max_items[{self.max_items}]"

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, list):
            return _type_mismatch("array", value)
        if self.min_items is not None and len(value) < self.min_items:
            return ValidationResult.invalid(self.message, ErrorCode.E2003_OUT_OF_RANGE,
                constraint="too_small", expected="array")
        if self.max_items is not None and len(value) > self.max_items:
            return ValidationResult.invalid(self.message, ErrorCode.E2003_OUT_OF_RANGE,
                constraint="too_big", expected="array")
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        if self.min_items is not None: return {"minItems": self.min_items}
        return {"maxItems": self.max_items}


# ============================================================================
# Formats
# ============================================================================

@dataclass(frozen=True, slots=True)
class PatternMatch(Refinement):
    """String must contain a match for the pattern (search semantics)."""
    pattern: str
    flags: int = 0
    message: str = ""

    @property
    def constraint_name(self) -> str:
        return f"pattern[{self.pattern}]"

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return _type_mismatch("string", value)
        if re.search(self.pattern, value, self.flags) is None:
            return ValidationResult.invalid(self.message, ErrorCode.E2002_INVALID_FORMAT,
                constraint="invalid_format", format="regex")
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        return {"pattern": self.pattern}


@dataclass(frozen=True, slots=True)
class EmailFormat(Refinement):
    message: str = "Invalid email format"

    @property
    def constraint_name(self) -> str:
        return "email"

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return _type_mismatch("string", value)
        if re.match(EMAIL_PATTERN, value) is None:
            return ValidationResult.invalid(self.message, ErrorCode.E2010_INVALID_EMAIL,
                constraint="invalid_format", format="email")
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        return {"format": "email"}


@dataclass(frozen=True, slots=True)
class ObjectIdFormat(Refinement):
    """Exactly 24 hexadecimal characters."""
    length_message: str = "Invalid ObjectId"
    format_message: str = "Invalid ObjectId format"

    @property
    def constraint_name(self) -> str:
        return "objectid"

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return _type_mismatch("string", value)
        if len(value) != 24:
            return ValidationResult.invalid(self.length_message, ErrorCode.E2013_INVALID_OBJECT_ID,
                constraint="invalid_format", format="objectid")
        if not ObjectId.is_valid(value):
            return ValidationResult.invalid(self.format_message, ErrorCode.E2013_INVALID_OBJECT_ID,
                constraint="invalid_format", format="objectid")
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        return {"pattern": OBJECT_ID_PATTERN, "minLength": 24, "maxLength": 24}


# ============================================================================
# Membership
# ============================================================================

@dataclass(frozen=True, slots=True)
class CaseFold(Refinement):
    """Lowercases string input; never fails on strings."""

    @property
    def constraint_name(self) -> str:
        return "lowercase"

    def transform(self, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return _type_mismatch("string", value)
        return ValidationResult.valid()


@dataclass(frozen=True, slots=True)
class Membership(Refinement):
    """Case-insensitive membership in a fixed set of strings."""
    allowed: tuple[str, ...]
    message: str = ""

    @property
    def constraint_name(self) -> str:
        return f"one_of[{', '.join(self.allowed)}]"

    def validate(self, value: Any) -> ValidationResult:
        if not isinstance(value, str):
            return _type_mismatch("string", value)
        if value.lower() not in {option.lower() for option in self.allowed}:
            return ValidationResult.invalid(self.message, ErrorCode.E2005_CONSTRAINT_VIOLATION,
                constraint="invalid_value", expected=" | ".join(self.allowed))
        return ValidationResult.valid()

    def json_schema_hints(self) -> dict[str, Any]:
        return {"enum": [option.lower() for option in self.allowed]}
