"""Validation Rule Tree

A ValidationRule is an immutable node: a base kind, ordered refinements,
presence (optional flag and default), an item rule for arrays and nested field
rules for objects. Every builder method returns a new node.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterator

from .refinements import Refinement


class RuleKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    ANY = "any"
    MAP = "map"


class _Missing:
    """Sentinel for "no default declared" (None is a legitimate default)."""
    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True, slots=True)
class ValidationRule:
    kind: RuleKind
    refinements: tuple[Refinement, ...] = ()
    optional: bool = False
    default: Any = MISSING
    item: ValidationRule | None = None
    fields: tuple[tuple[str, ValidationRule], ...] | None = None

    @classmethod
    def of(cls, kind: RuleKind, *refinements: Refinement) -> ValidationRule:
        return cls(kind=kind, refinements=refinements)

    @classmethod
    def array(cls, item: ValidationRule | None = None) -> ValidationRule:
        return cls(kind=RuleKind.ARRAY, item=item)

    @classmethod
    def object(cls, fields: dict[str, ValidationRule] | None = None) -> ValidationRule:
        """Nested object rule; ``None`` fields means an open object."""
        return cls(kind=RuleKind.OBJECT, fields=tuple(fields.items()) if fields is not None else None)

    @property
    def is_string(self) -> bool: return self.kind is RuleKind.STRING

    @property
    def is_number(self) -> bool: return self.kind is RuleKind.NUMBER

    @property
    def is_array(self) -> bool: return self.kind is RuleKind.ARRAY

    @property
    def has_default(self) -> bool: return self.default is not MISSING

    def has_refinement(self, refinement_type: type[Refinement]) -> bool:
        return any(isinstance(r, refinement_type) for r in self.refinements)

    def field_rules(self) -> Iterator[tuple[str, ValidationRule]]:
        return iter(self.fields or ())

    def rule_at(self, path: tuple[str | int, ...]) -> ValidationRule | None:
        """Rule governing a value path (field names and list indexes)."""
        rule: ValidationRule | None = self
        for segment in path:
            if rule is None:
                return None
            if isinstance(segment, int):
                rule = rule.item
            else:
                rule = dict(rule.field_rules()).get(segment)
        return rule

    def refine(self, *refinements: Refinement) -> ValidationRule:
        return replace(self, refinements=self.refinements + refinements)

    def mark_optional(self) -> ValidationRule:
        return replace(self, optional=True)

    def with_default(self, value: Any) -> ValidationRule:
        return replace(self, default=value)
