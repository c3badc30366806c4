"""Validation Field Compiler

Turns field definitions into ValidationRule trees. The base rule comes from
the canonical type; modifiers then apply in source order through a single
handler table, so a later modifier can refine or replace what an earlier one
built.

Enum fields are always case-insensitive strings: an ``enum`` modifier replaces
the rule built so far with a fresh lowercasing string membership rule whatever
the declared type. Presence set before it is dropped; only modifiers after it,
and the final default step, make the field optional again.
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable

from dualschema.definition import ArrayShorthand, FieldSpec, SchemaDefinition, parse_definition, parse_field
from dualschema.errors import InvalidDefinitionError
from dualschema.logging import compiler_logger
from dualschema.messages import password_rule_message, pattern_message, synthesize_message
from dualschema.patterns import PASSWORD_PATTERN, pattern_source
from dualschema.resolver import CanonicalType, lookup_type, resolve_type

from .refinements import (
    CaseFold,
    EmailFormat,
    ItemCountBound,
    LengthBound,
    Membership,
    NumericBound,
    ObjectIdFormat,
    PatternMatch,
)
from .rules import RuleKind, ValidationRule

log = compiler_logger()


@dataclass(frozen=True, slots=True)
class ValidationOptions:
    """Options shared by every field of one compilation, nested schemas included."""
    strict_mode: bool = False
    custom_messages: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class _FieldContext:
    name: str
    spec: FieldSpec
    options: ValidationOptions

    def message(self, rule: str, value: Any = None, fallback: str | None = None) -> str:
        return synthesize_message(self.name, rule, value, self.options.custom_messages, fallback)


_SCALAR_KINDS: dict[CanonicalType, RuleKind] = {
    CanonicalType.STRING: RuleKind.STRING,
    CanonicalType.NUMBER: RuleKind.NUMBER,
    CanonicalType.BOOLEAN: RuleKind.BOOLEAN,
    CanonicalType.DATE: RuleKind.DATE,
    CanonicalType.MIXED: RuleKind.ANY,
    CanonicalType.MAP: RuleKind.MAP,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _object_id_rule() -> ValidationRule:
    return ValidationRule.of(RuleKind.STRING, ObjectIdFormat())


def _enum_values(name: str, value: Any) -> tuple[str, ...] | None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or not value:
        return None
    if not all(isinstance(option, str) for option in value):
        raise InvalidDefinitionError(f"Enum values for field '{name}' must be strings", name)
    return tuple(value)


def _enum_rule(ctx_name: str, allowed: tuple[str, ...], message: str | None) -> ValidationRule:
    message = message or f"{ctx_name} must be one of: {', '.join(allowed)}"
    return ValidationRule.of(RuleKind.STRING, CaseFold(), Membership(allowed, message))


# ============================================================================
# Base rules
# ============================================================================

def _base_rule(name: str, canonical: CanonicalType, spec: FieldSpec, options: ValidationOptions) -> ValidationRule:
    match canonical:
        case CanonicalType.ARRAY:
            item = spec.items
            return ValidationRule.array(_item_rule(name, item, options) if item is not None else None)
        case CanonicalType.OBJECT:
            nested = spec.schema
            return compile_validation_rules(nested, options) if nested is not None else ValidationRule.object()
        case CanonicalType.OBJECT_ID:
            return _object_id_rule()
        case _:
            return ValidationRule.of(_SCALAR_KINDS[canonical])


def _item_rule(name: str, item: FieldSpec, options: ValidationOptions) -> ValidationRule | None:
    """Item rule for an array; None (any item) when the item type is unresolved."""
    if (canonical := lookup_type(item.type)) is None:
        log.debug("array_items_unconstrained", field=name, item_type=repr(item.type))
        return None
    return _base_rule(name, canonical, item, options)


# ============================================================================
# Modifier handlers
# ============================================================================

def _required(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    return rule.mark_optional() if value is False else rule


def _minlength(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if not (rule.is_string and _is_number(value)):
        return rule
    return rule.refine(LengthBound(min_length=value, message=ctx.message("minlength", value)))


def _maxlength(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if not (rule.is_string and _is_number(value)):
        return rule
    return rule.refine(LengthBound(max_length=value, message=ctx.message("maxlength", value)))


def _min(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if not _is_number(value):
        return rule
    if rule.is_number:
        return rule.refine(NumericBound(minimum=value,
            message=ctx.message("min", value, f"Min value for {ctx.name} is {value}")))
    if rule.is_array:
        return rule.refine(ItemCountBound(min_items=value,
            message=ctx.message("min", value, f"Array {ctx.name} must have at least {value} items")))
    return rule


def _max(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if not _is_number(value):
        return rule
    if rule.is_number:
        return rule.refine(NumericBound(maximum=value,
            message=ctx.message("max", value, f"Max value for {ctx.name} is {value}")))
    if rule.is_array:
        return rule.refine(ItemCountBound(max_items=value,
            message=ctx.message("max", value, f"Array {ctx.name} must have at most {value} items")))
    return rule


def _email(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if value is not True or not rule.is_string:
        return rule
    return rule.refine(EmailFormat(ctx.message("email", fallback=f"Invalid email format for {ctx.name}")))


def _enum(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if (allowed := _enum_values(ctx.name, value)) is None:
        return rule
    custom = ctx.options.custom_messages.get(f"{ctx.name}.enum")
    return _enum_rule(ctx.name, allowed, custom)


def _regex(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    if not rule.is_string or not isinstance(value, (str, re.Pattern)):
        return rule
    if isinstance(value, re.Pattern) and not isinstance(value.pattern, str):
        raise InvalidDefinitionError(f"Pattern for field '{ctx.name}' must be a text pattern, not bytes", ctx.name)
    source, flags = pattern_source(value)
    try:
        re.compile(source, flags)
    except re.error as exc:
        raise InvalidDefinitionError(f"Invalid pattern for field '{ctx.name}': {exc}", ctx.name) from exc
    message = pattern_message(ctx.name, value, ctx.options.custom_messages)
    return rule.refine(PatternMatch(source, flags, message))


def _default(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    return rule.with_default(value)


def _ref(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    # Reference fields hold ObjectId strings whatever their declared type.
    if not rule.is_string or rule.has_refinement(ObjectIdFormat):
        return rule
    return rule.refine(ObjectIdFormat())


def _unique(ctx: _FieldContext, rule: ValidationRule, value: Any) -> ValidationRule:
    # Uniqueness is a storage concern.
    return rule


MODIFIER_HANDLERS: dict[str, Callable[[_FieldContext, ValidationRule, Any], ValidationRule]] = {
    "required": _required,
    "minlength": _minlength,
    "maxlength": _maxlength,
    "min": _min,
    "max": _max,
    "email": _email,
    "enum": _enum,
    "regex": _regex,
    "default": _default,
    "ref": _ref,
    "unique": _unique,
}


# ============================================================================
# Entry points
# ============================================================================

def _compile_shorthand(name: str, spec: ArrayShorthand, options: ValidationOptions) -> ValidationRule:
    item = spec.item
    item_rule = _item_rule(name, item, options)
    if (allowed := _enum_values(name, item.get("enum"))) is not None:
        item_rule = _enum_rule(name, allowed, options.custom_messages.get(f"{name}.enum"))
    return ValidationRule.array(item_rule)


def compile_validation_field(
    name: str,
    spec: FieldSpec | ArrayShorthand | Mapping[str, Any] | Sequence[Any],
    options: ValidationOptions | None = None,
) -> ValidationRule:
    """Compile one field definition into a ValidationRule.

    Raises:
        UnsupportedTypeError: the field's type token is unknown.
        InvalidDefinitionError: the field definition is malformed.
    """
    options = options or ValidationOptions()
    spec = parse_field(spec, name)
    if isinstance(spec, ArrayShorthand):
        return _compile_shorthand(name, spec, options)

    ctx = _FieldContext(name, spec, options)
    rule = _base_rule(name, resolve_type(spec.type, name), spec, options)

    for modifier, value in spec:
        if (handler := MODIFIER_HANDLERS.get(modifier)) is not None:
            rule = handler(ctx, rule, value)

    if rule.is_string and "password" in name.lower() and not spec.has("regex"):
        rule = rule.refine(PatternMatch(PASSWORD_PATTERN, 0, password_rule_message(name)))

    if spec.has("default") and spec.get("required") is not True:
        rule = rule.mark_optional()

    return rule


def compile_validation_rules(definition: SchemaDefinition, options: ValidationOptions | None = None) -> ValidationRule:
    """Compile a whole definition into an object rule, recursing into nested schemas."""
    options = options or ValidationOptions()
    fields = {
        name: compile_validation_field(name, spec, options)
        for name, spec in parse_definition(definition).items()
    }
    log.debug("validation_rules_compiled", fields=len(fields))
    return ValidationRule.object(fields)
