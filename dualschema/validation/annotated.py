"""Annotated Types for Compiled Validation Models

Pydantic v2 building blocks the rule tree lowers to. Refinements run as one
after-validator per field so that a field stops at its first failure, and each
failure surfaces as a PydanticCustomError carrying the refinement's issue code.

Usage:
    from dualschema.validation.annotated import Refined, StrictNumber, IsoDateTime

    age: Annotated[StrictNumber, Refined([NumericBound(minimum=18, message="...")])]
    born: IsoDateTime
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, time
from typing import Annotated, Any, Union

from pydantic import BeforeValidator, GetCoreSchemaHandler, GetJsonSchemaHandler, Strict
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema, PydanticCustomError, core_schema

from .refinements import Refinement, ValidationResult


class _Absent:
    """Value of an optional field the input did not supply."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


def absent() -> _Absent:
    return ABSENT


def _issue_context(result: ValidationResult) -> dict[str, Any]:
    context: dict[str, Any] = {}
    if result.error_code is not None:
        context["error_code"] = result.error_code.name
    if result.expected is not None:
        context["expected"] = result.expected
    if result.format is not None:
        context["format"] = result.format
    return context


# ============================================================================
# Refinement Chain
# ============================================================================

class Refined:
    """Runs refinements in order after type validation; first failure wins."""
    __slots__ = ("refinements",)

    def __init__(self, refinements: Sequence[Refinement]): self.refinements = tuple(refinements)

    def __get_pydantic_core_schema__(self, source_type: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.no_info_after_validator_function(self._validate, handler(source_type))

    def _validate(self, v: Any) -> Any:
        for refinement in self.refinements:
            v = refinement.transform(v)
            result = refinement.validate(v)
            if not result.is_valid:
                raise PydanticCustomError(result.constraint or "custom", result.error_message or "Invalid value",
                    _issue_context(result))
        return v

    def __get_pydantic_json_schema__(self, cs: CoreSchema, handler: GetJsonSchemaHandler) -> JsonSchemaValue:
        schema = dict(handler(cs))
        for refinement in self.refinements:
            schema.update(refinement.json_schema_hints())
        return schema


# ============================================================================
# Base Types
# ============================================================================

class _StrictNumberSchema:
    """int or float, never bool and never a numeric string; one error on mismatch."""
    __slots__ = ()

    def __get_pydantic_core_schema__(self, source_type: Any, handler: GetCoreSchemaHandler) -> CoreSchema:
        return core_schema.union_schema(
            [core_schema.int_schema(strict=True), core_schema.float_schema(strict=True)],
            custom_error_type="invalid_type",
            custom_error_message="Expected number",
            custom_error_context={"expected": "number"},
        )


def _to_datetime(v: Any) -> Any:
    if isinstance(v, datetime):
        return v
    if isinstance(v, date):
        return datetime.combine(v, time())
    if isinstance(v, str):
        try:
            return datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise PydanticCustomError("invalid_date", "Invalid date", {"expected": "date"}) from None
    raise PydanticCustomError("invalid_type", "Expected date, received {received}",
        {"expected": "date", "received": type(v).__name__})


StrictNumber = Annotated[Union[int, float], _StrictNumberSchema()]
IsoDateTime = Annotated[datetime, Strict(), BeforeValidator(_to_datetime)]
