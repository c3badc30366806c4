"""Validation Schema Runtime

Lowers a ValidationRule tree to dynamically created pydantic models and wraps
them with a parse / safe_parse API. Field names are carried as aliases, so any
string (``_id``, ``first-name``) is a valid field name.

Parsing returns plain dicts: fields the input supplied plus fields with a
declared default. Optional fields that were not supplied are left out.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, create_model
from pydantic import ValidationError as PydanticValidationError

from dualschema.definition import SchemaDefinition
from dualschema.errors import AppError, Err, Ok, Result
from dualschema.logging import validation_logger

from .annotated import ABSENT, IsoDateTime, Refined, StrictNumber, absent
from .compiler import ValidationOptions, compile_validation_rules
from .errors import ValidationError
from .rules import RuleKind, ValidationRule

log = validation_logger()


class CompiledModel(BaseModel):
    """Base for generated models; ``export`` drops fields the input never supplied."""
    model_config = ConfigDict(extra="ignore")

    def export(self) -> dict[str, Any]:
        exported: dict[str, Any] = {}
        for attr, info in type(self).model_fields.items():
            value = getattr(self, attr)
            if value is ABSENT:
                continue
            exported[info.alias or attr] = _export_value(value)
        return exported


class StrictCompiledModel(CompiledModel):
    model_config = ConfigDict(extra="forbid")


def _export_value(value: Any) -> Any:
    if isinstance(value, CompiledModel):
        return value.export()
    if isinstance(value, list):
        return [_export_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _export_value(item) for key, item in value.items()}
    return value


# ============================================================================
# Lowering
# ============================================================================

_SCALAR_TYPES: dict[RuleKind, Any] = {
    RuleKind.STRING: StrictStr,
    RuleKind.NUMBER: StrictNumber,
    RuleKind.BOOLEAN: StrictBool,
    RuleKind.DATE: IsoDateTime,
    RuleKind.ANY: Any,
    RuleKind.MAP: dict[str, StrictStr],
}


class _Lowering:
    """Builds pydantic annotations for one schema; nested models are numbered per schema."""

    def __init__(self, base: type[CompiledModel], model_name: str):
        self.base = base
        self.model_name = model_name
        self._counter = 0

    def annotation(self, rule: ValidationRule, path: str) -> Any:
        base = self._base(rule, path)
        return Annotated[base, Refined(rule.refinements)] if rule.refinements else base

    def _base(self, rule: ValidationRule, path: str) -> Any:
        match rule.kind:
            case RuleKind.ARRAY:
                return list[self.annotation(rule.item, path)] if rule.item is not None else list[Any]
            case RuleKind.OBJECT if rule.fields is None:
                return dict[str, Any]
            case RuleKind.OBJECT:
                return self.model(rule, path)
            case kind:
                return _SCALAR_TYPES[kind]

    def model(self, rule: ValidationRule, path: str, *, partial: bool = False) -> type[CompiledModel]:
        definitions: dict[str, Any] = {}
        for index, (name, field_rule) in enumerate(rule.field_rules()):
            definitions[f"field_{index}"] = self._field(name, field_rule, f"{path}.{name}" if path else name, partial)
        self._counter += 1
        model_name = self.model_name if not path else f"{self.model_name}_{self._counter}"
        return create_model(model_name, __base__=self.base, **definitions)

    def _field(self, name: str, rule: ValidationRule, path: str, partial: bool) -> tuple[Any, Any]:
        annotation = self.annotation(rule, path)
        if partial:
            return annotation, Field(default_factory=absent, alias=name)
        if rule.has_default:
            if callable(rule.default):
                return annotation, Field(default_factory=rule.default, alias=name, validate_default=True)
            return annotation, Field(default=rule.default, alias=name, validate_default=True)
        if rule.optional:
            return annotation, Field(default_factory=absent, alias=name)
        return annotation, Field(alias=name)


# ============================================================================
# Schema
# ============================================================================

class ValidationSchema:
    """Compiled validation schema for one definition.

    Usage:
        schema = compile_validation_schema({"email": {"type": "String", "email": True}})
        data = schema.parse({"email": "a@b.co"})
        result = schema.safe_parse(payload)
    """

    def __init__(self, rule: ValidationRule, options: ValidationOptions | None = None, *,
                 name: str = "ValidationModel", partial: bool = False):
        self.rule = rule
        self.options = options or ValidationOptions()
        self.name = name
        self.is_partial = partial
        base = StrictCompiledModel if self.options.strict_mode else CompiledModel
        self.model: type[CompiledModel] = _Lowering(base, name).model(rule, "", partial=partial)

    @property
    def field_names(self) -> list[str]:
        return [name for name, _ in self.rule.field_rules()]

    def _expected_kind(self, path: tuple[str | int, ...]) -> str | None:
        rule = self.rule.rule_at(path)
        return rule.kind.value if rule is not None else None

    def parse(self, data: Any) -> dict[str, Any]:
        """Validate and return the accepted data; raises ValidationError."""
        try:
            instance = self.model.model_validate(data)
        except PydanticValidationError as exc:
            error = ValidationError.from_pydantic(exc, self._expected_kind, self.options.custom_messages)
            log.debug("validation_failed", schema=self.name, issues=len(error.issues))
            raise error from None
        return instance.export()

    def safe_parse(self, data: Any) -> Result[dict[str, Any], ValidationError]:
        try:
            return Ok(self.parse(data))
        except ValidationError as exc:
            return Err(exc)

    def validate(self, data: Any) -> Result[dict[str, Any], AppError]:
        """Like safe_parse, with the failure converted to an AppError."""
        return self.safe_parse(data).map_err(lambda exc: exc.to_app_error())

    def partial(self) -> ValidationSchema:
        """Same fields, every top-level field optional and no defaults applied."""
        return ValidationSchema(self.rule, self.options, name=f"{self.name}Partial", partial=True)

    def json_schema(self) -> dict[str, Any]:
        return self.model.model_json_schema(by_alias=True)

    def __repr__(self) -> str:
        return f"ValidationSchema(fields={self.field_names!r}, strict={self.options.strict_mode})"


def compile_validation_schema(
    definition: SchemaDefinition,
    *,
    strict_mode: bool = False,
    custom_messages: Mapping[str, str] | None = None,
) -> ValidationSchema:
    """Compile a definition into a ValidationSchema.

    Raises:
        CompilationError: the definition names an unknown type or is malformed.
    """
    options = ValidationOptions(strict_mode=strict_mode, custom_messages=dict(custom_messages or {}))
    return ValidationSchema(compile_validation_rules(definition, options), options)
