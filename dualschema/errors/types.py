"""Error Types and Result Monad

Typed error codes, an immutable AppError carrying structured metadata, and
Ok/Err variants for APIs that report failure without raising. Exceptions that
must propagate (compilation failures) wrap an AppError so both styles share
one taxonomy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Iterator, NoReturn, TypeVar, Union, final

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.

    E2xxx: Validation and schema-definition errors
    """
    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2004_INVALID_TYPE = 2004
    E2005_CONSTRAINT_VIOLATION = 2005
    E2010_INVALID_EMAIL = 2010
    E2013_INVALID_OBJECT_ID = 2013

    # Schema definition (E203x)
    E2030_UNSUPPORTED_TYPE = 2030
    E2031_INVALID_DEFINITION = 2031

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 2030 <= code < 2040:
            return "definition"
        return "validation"


@dataclass(frozen=True, slots=True)
class AppError:
    """Base error value with code, message and structured metadata."""
    code: ErrorCode
    message: str
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    def with_metadata(self, **kwargs) -> AppError:
        """Create new error with additional metadata."""
        return AppError(
            code=self.code,
            message=self.message,
            metadata={**self.metadata, **kwargs},
            cause=self.cause,
        )

    def to_dict(self) -> dict:
        """Serialize error for API responses."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the success value."""
        return Ok(f(self.value))

    def map_err(self, f: Callable[[Any], F]) -> Ok[T]:
        return self

    def match(self, ok: Callable[[T], U], err: Callable[[Any], U]) -> U:
        """Pattern match on Result. Forces exhaustive handling."""
        return ok(self.value)

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """Raises because Err has no value to unwrap."""
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, f: Callable[[Any], U]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        """Transform the error."""
        return Err(f(self.error))

    def match(self, ok: Callable[[Any], U], err: Callable[[E], U]) -> U:
        return err(self.error)

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]


class CompilationError(Exception):
    """Fatal schema compilation failure.

    Wraps an AppError so callers that prefer values over exceptions can
    recover the structured error via ``exc.error``.
    """

    def __init__(self, error: AppError):
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    def to_app_error(self) -> AppError:
        return self.error


class UnsupportedTypeError(CompilationError):
    """A type token that the validation compiler cannot resolve."""

    def __init__(self, token: Any, field_name: str | None = None):
        self.token = token
        self.field_name = field_name
        where = f" for field '{field_name}'" if field_name else ""
        super().__init__(AppError(
            code=ErrorCode.E2030_UNSUPPORTED_TYPE,
            message=f"Invalid type{where}: {token!r}",
            metadata={"field": field_name, "type": repr(token)},
        ))


class InvalidDefinitionError(CompilationError):
    """A schema definition or field definition with an unusable shape."""

    def __init__(self, message: str, field_name: str | None = None):
        self.field_name = field_name
        super().__init__(AppError(
            code=ErrorCode.E2031_INVALID_DEFINITION,
            message=message,
            metadata={"field": field_name} if field_name else {},
        ))
