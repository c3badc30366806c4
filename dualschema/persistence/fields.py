"""Persistence Field Records

PersistenceFieldConfig is the flat, storage-facing description of one field.
Attributes the definition never mentioned hold UNSET, which keeps them apart
from an explicit ``None`` (a legitimate ``default``).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Any


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True, slots=True)
class FormatCheck:
    """Single per-field format validator run by the storage layer."""
    pattern: str
    flags: int = 0
    message: str = "Invalid format"

    def __call__(self, value: Any) -> bool:
        if value is None:
            return True
        return isinstance(value, str) and re.search(self.pattern, value, self.flags) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "flags": self.flags, "message": self.message}


@dataclass(frozen=True, slots=True)
class PersistenceFieldConfig:
    """Storage config for one field.

    ``type`` is a CanonicalType, a one-element list for typed arrays
    (``[CanonicalType.STRING]``), or whatever unknown token was declared.
    """
    type: Any
    required: Any = UNSET
    unique: Any = UNSET
    minlength: Any = UNSET
    maxlength: Any = UNSET
    min: Any = UNSET
    max: Any = UNSET
    default: Any = UNSET
    ref: Any = UNSET
    validate: FormatCheck | Any = UNSET
    select: Any = UNSET
    sparse: Any = UNSET
    index: Any = UNSET
    text: Any = UNSET
    immutable: Any = UNSET
    transform: Any = UNSET
    get: Any = UNSET
    set: Any = UNSET

    @property
    def is_array(self) -> bool:
        return isinstance(self.type, list)

    @property
    def item_type(self) -> Any:
        return self.type[0] if self.is_array and self.type else None

    def is_set(self, name: str) -> bool:
        return getattr(self, name, UNSET) is not UNSET

    def to_dict(self) -> dict[str, Any]:
        """Only the attributes that were supplied, in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}
