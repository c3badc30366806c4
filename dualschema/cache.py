"""Compilation Cache

Compiled schema pairs keyed by a content signature of the definition and the
compile options. The signature is structural and order-sensitive. FieldSpec
and ArrayShorthand values are serialized by their contents; callables and
other opaque values are keyed by identity. A cached pair holds references to
every opaque value of its inputs, so an identity cannot be reused while the
entry lives.

The default cache is process-wide and bounded by settings; any SchemaCache
can be injected per call instead.
"""
from __future__ import annotations

import hashlib
import json
import re
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable, Mapping
from datetime import date, datetime, time as dt_time
from enum import Enum
from functools import lru_cache
from typing import Any, Generic, TypeVar

from bson import ObjectId

from dualschema.config import get_settings
from dualschema.definition import ArrayShorthand, FieldSpec
from dualschema.errors import InvalidDefinitionError
from dualschema.logging import cache_logger

V = TypeVar("V")

log = cache_logger()


# ============================================================================
# Content Signature
# ============================================================================

def _canonical(value: Any, active: set[int]) -> Any:
    if isinstance(value, Enum):
        return {"__enum__": f"{type(value).__module__}.{type(value).__qualname__}.{value.name}"}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, re.Pattern):
        if isinstance(value.pattern, bytes):
            return {"__reb__": [value.pattern.hex(), value.flags]}
        return {"__re__": [value.pattern, value.flags]}
    if isinstance(value, ObjectId):
        return {"__oid__": str(value)}
    if isinstance(value, (datetime, date, dt_time)):
        return {"__dt__": [type(value).__name__, value.isoformat()]}
    if isinstance(value, FieldSpec):
        return {"__field__": [_canonical(value.type, active), _canonical(value.modifiers, active)]}
    if isinstance(value, ArrayShorthand):
        return {"__array__": _canonical(value.item, active)}
    if isinstance(value, type):
        return {"__type__": f"{value.__module__}.{value.__qualname__}", "id": id(value)}
    if isinstance(value, (Mapping, list, tuple)):
        if id(value) in active:
            raise InvalidDefinitionError("Schema definition contains a reference cycle")
        active.add(id(value))
        try:
            if isinstance(value, Mapping):
                return {"__map__": [[_canonical(k, active), _canonical(v, active)] for k, v in value.items()]}
            return {"__seq__" if isinstance(value, list) else "__tuple__": [_canonical(v, active) for v in value]}
        finally:
            active.discard(id(value))
    return {"__ref__": type(value).__qualname__, "id": id(value)}


def content_signature(definition: Any, options: Any = None) -> str:
    """SHA-256 of a canonical serialization of a definition and its compile options."""
    payload = json.dumps(
        [_canonical(definition, set()), _canonical(options, set())],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# ============================================================================
# Cache Interface
# ============================================================================

class SchemaCache(ABC, Generic[V]):
    """Key/value store for compiled schemas with an atomic get-or-compile."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    @abstractmethod
    def get(self, key: str) -> V | None:
        """Cached value or None."""

    @abstractmethod
    def set(self, key: str, value: V) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def __len__(self) -> int: ...

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get_or_compile(self, key: str, factory: Callable[[], V]) -> V:
        """Return the cached value, compiling and storing it on a miss.

        The lock spans the lookup and the insert, so concurrent callers with
        the same key compile once.
        """
        with self._lock:
            if (cached := self.get(key)) is not None:
                self.hits += 1
                log.debug("schema_cache_hit", key=key[:12])
                return cached
            self.misses += 1
            log.debug("schema_cache_miss", key=key[:12])
            value = factory()
            self.set(key, value)
            return value

    def stats(self) -> dict[str, int]:
        return {"size": len(self), "hits": self.hits, "misses": self.misses}


class BoundedSchemaCache(SchemaCache[V]):
    """LRU cache with optional entry TTL; ``None`` disables either bound."""

    def __init__(
        self,
        max_size: int | None = 512,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be >= 1 or None")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0 or None")
        super().__init__()
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, V]] = OrderedDict()

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and self._clock() - stored_at >= self.ttl_seconds

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._expired(stored_at):
                del self._entries[key]
                log.debug("schema_cache_expired", key=key[:12])
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while self.max_size is not None and len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                log.debug("schema_cache_evicted", key=evicted[:12], max_size=self.max_size)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            for key in [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at)]:
                del self._entries[key]
            return len(self._entries)

    def __repr__(self) -> str:
        return f"BoundedSchemaCache(max_size={self.max_size}, ttl_seconds={self.ttl_seconds}, size={len(self)})"


@lru_cache
def get_default_cache() -> BoundedSchemaCache:
    """Process-wide cache bounded by DUALSCHEMA_SCHEMA_CACHE_* settings."""
    settings = get_settings()
    return BoundedSchemaCache(settings.SCHEMA_CACHE_MAX_SIZE, settings.SCHEMA_CACHE_TTL_SECONDS)
