"""Validation Failures and Error Normalization

ValidationError is what a compiled validation schema raises: every failing
field is reported, one ValidationIssue per field. ``normalize_errors`` flattens
any failure object (ours, a pydantic ValidationError, or a plain mapping with
an ``issues``/``errors`` collection) into uniform NormalizedError records and
never raises.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from dualschema.errors import AppError, ErrorCode
from dualschema.logging import validation_logger
from dualschema.messages import synthesize_message

log = validation_logger()

UNKNOWN = "unknown"
DEFAULT_MESSAGE = "Validation failed"

_ERROR_CODES: dict[str, ErrorCode] = {
    "invalid_type": ErrorCode.E2004_INVALID_TYPE,
    "too_small": ErrorCode.E2003_OUT_OF_RANGE,
    "too_big": ErrorCode.E2003_OUT_OF_RANGE,
    "invalid_format": ErrorCode.E2002_INVALID_FORMAT,
    "invalid_value": ErrorCode.E2005_CONSTRAINT_VIOLATION,
    "invalid_date": ErrorCode.E2002_INVALID_FORMAT,
    "unrecognized_keys": ErrorCode.E2005_CONSTRAINT_VIOLATION,
}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One failed rule at one value path."""
    path: tuple[str | int, ...]
    message: str
    code: str
    input: Any = None
    expected: str | None = None
    format: str | None = None

    @property
    def field(self) -> str:
        return ".".join(str(segment) for segment in self.path) if self.path else UNKNOWN

    @property
    def error_code(self) -> ErrorCode:
        return _ERROR_CODES.get(self.code, ErrorCode.E2000_VALIDATION_GENERIC)

    def to_dict(self) -> dict[str, Any]:
        return {"path": list(self.path), "message": self.message, "code": self.code,
            "input": self.input, "expected": self.expected, "format": self.format}


def _leaf_name(path: tuple[str | int, ...]) -> str:
    return next((str(segment) for segment in reversed(path) if isinstance(segment, str)), UNKNOWN)


def _issue_from_pydantic(
    detail: Mapping[str, Any],
    expected_kind: Callable[[tuple[str | int, ...]], str | None],
    custom_messages: Mapping[str, str] | None,
) -> ValidationIssue:
    path = tuple(detail.get("loc", ()))
    kind = detail.get("type", UNKNOWN)
    ctx = detail.get("ctx") or {}

    if kind == "missing":
        return ValidationIssue(path, synthesize_message(_leaf_name(path), "required", custom_messages=custom_messages),
            "invalid_type", None, expected_kind(path))
    if kind == "extra_forbidden":
        return ValidationIssue(path, f"Unrecognized key: '{_leaf_name(path)}'", "unrecognized_keys",
            detail.get("input"))
    if kind.endswith("_type"):
        return ValidationIssue(path, detail.get("msg", DEFAULT_MESSAGE), "invalid_type", detail.get("input"),
            ctx.get("expected") or expected_kind(path))
    return ValidationIssue(path, detail.get("msg", DEFAULT_MESSAGE), kind, detail.get("input"),
        ctx.get("expected"), ctx.get("format"))


class ValidationError(Exception):
    """Input rejected by a compiled validation schema."""

    def __init__(self, issues: Sequence[ValidationIssue]):
        self.issues = list(issues)
        super().__init__(self._summary())

    @classmethod
    def from_pydantic(
        cls,
        exc: PydanticValidationError,
        expected_kind: Callable[[tuple[str | int, ...]], str | None] = lambda path: None,
        custom_messages: Mapping[str, str] | None = None,
    ) -> ValidationError:
        return cls([_issue_from_pydantic(detail, expected_kind, custom_messages)
            for detail in exc.errors(include_url=False)])

    def _summary(self) -> str:
        if not self.issues:
            return DEFAULT_MESSAGE
        return "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)

    def field_errors(self) -> dict[str, list[str]]:
        """Messages grouped by dotted field path."""
        grouped: dict[str, list[str]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.field, []).append(issue.message)
        return grouped

    def to_app_error(self) -> AppError:
        code = self.issues[0].error_code if len(self.issues) == 1 else ErrorCode.E2000_VALIDATION_GENERIC
        return AppError(code=code, message=self._summary(), metadata={"issues": [i.to_dict() for i in self.issues]},
            cause=self)

    def to_dict(self) -> dict[str, Any]:
        return {"issues": [issue.to_dict() for issue in self.issues]}


# ============================================================================
# Error Normalizer
# ============================================================================

@dataclass(frozen=True, slots=True)
class NormalizedError:
    """Flat, transport-ready description of one failed rule."""
    field: str = UNKNOWN
    message: str = DEFAULT_MESSAGE
    code: str = UNKNOWN
    value: Any = None
    type: str = UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "code": self.code, "value": self.value,
            "type": self.type}


def _read(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    if source is None or isinstance(source, (str, bytes, int, float)):
        return None
    return getattr(source, name, None)


def _first(source: Any, *names: str) -> Any:
    for name in names:
        if (value := _read(source, name)) is not None:
            return value
    return None


def _entries(failure: Any) -> list[Any]:
    for name in ("issues", "errors"):
        collection = _read(failure, name)
        if callable(collection):
            collection = collection()
        if collection is None:
            continue
        if isinstance(collection, (str, bytes, Mapping)) or not isinstance(collection, Sequence):
            return []
        return list(collection)
    return []


def _field_path(entry: Any) -> str:
    path = _first(entry, "path", "loc")
    if isinstance(path, str):
        return path or UNKNOWN
    if isinstance(path, Sequence) and path:
        return ".".join(str(segment) for segment in path)
    return UNKNOWN


def _normalize_entry(entry: Any) -> NormalizedError:
    ctx = _read(entry, "ctx")
    value = _read(entry, "input")
    if value is None:
        value = _read(entry, "received")
    expected = _first(entry, "expected", "format")
    if expected is None and ctx is not None:
        expected = _first(ctx, "expected", "format")
    return NormalizedError(
        field=_field_path(entry),
        message=str(_first(entry, "message", "msg") or DEFAULT_MESSAGE),
        code=str(_first(entry, "code", "type") or UNKNOWN),
        value=value,
        type=str(expected) if expected is not None else UNKNOWN,
    )


def normalize_errors(failure: Any) -> list[NormalizedError]:
    """Flatten a validation failure into NormalizedError records.

    Reads an ``issues`` collection, else an ``errors`` collection (attribute,
    mapping key or zero-argument method). Never raises: an unreadable failure
    yields an empty list and an unreadable entry yields a record of defaults.
    """
    try:
        entries = _entries(failure)
    except Exception as exc:
        log.warning("validation_failure_unreadable", error=str(exc), failure_type=type(failure).__name__)
        return []

    normalized: list[NormalizedError] = []
    for index, entry in enumerate(entries):
        try:
            normalized.append(_normalize_entry(entry))
        except Exception as exc:
            log.warning("validation_issue_unreadable", index=index, error=str(exc))
            normalized.append(NormalizedError())
    return normalized
