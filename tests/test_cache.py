"""Tests for dualschema.cache."""

import re
import threading
from datetime import datetime

import pytest
from bson import ObjectId

from dualschema.cache import BoundedSchemaCache, content_signature, get_default_cache
from dualschema.definition import ArrayShorthand, FieldSpec
from dualschema.errors import InvalidDefinitionError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestContentSignature:
    """Structural, order-sensitive signatures."""

    def test_equal_definitions_match(self):
        first = {"name": {"type": "String", "regex": re.compile("^a")}}
        second = {"name": {"type": "String", "regex": re.compile("^a")}}
        assert content_signature(first) == content_signature(second)

    def test_key_order_matters(self):
        assert content_signature({"a": 1, "b": 2}) != content_signature({"b": 2, "a": 1})

    def test_type_constant_differs_from_alias(self):
        assert content_signature({"name": {"type": str}}) != content_signature({"name": {"type": "str"}})

    def test_scalar_types_are_distinguished(self):
        signatures = {content_signature(value) for value in (1, 1.0, True, "1", None)}
        assert len(signatures) == 5

    def test_list_and_tuple_differ(self):
        assert content_signature(["a"]) != content_signature(("a",))

    def test_tagged_values(self):
        oid = "507f1f77bcf86cd799439011"
        assert content_signature(ObjectId(oid)) == content_signature(ObjectId(oid))
        assert content_signature(datetime(2024, 1, 1)) == content_signature(datetime(2024, 1, 1))
        assert content_signature(re.compile("^a", re.I)) != content_signature(re.compile("^a"))

    def test_callables_are_identity_keyed(self):
        def factory():
            return 0

        assert content_signature({"default": factory}) == content_signature({"default": factory})
        assert content_signature({"default": lambda: 0}) != content_signature({"default": lambda: 0})

    def test_field_specs_are_keyed_by_content(self):
        assert content_signature({"a": FieldSpec(type="String")}) == content_signature({"a": FieldSpec(type="String")})
        assert content_signature({"a": FieldSpec(type="String")}) != content_signature({"a": FieldSpec(type="Number")})
        assert content_signature(FieldSpec(type="String", modifiers=(("required", True),))) != content_signature(
            FieldSpec(type="String")
        )

    def test_array_shorthand_is_keyed_by_content(self):
        first = ArrayShorthand(FieldSpec(type="String"))
        assert content_signature(first) == content_signature(ArrayShorthand(FieldSpec(type="String")))
        assert content_signature(first) != content_signature(ArrayShorthand(FieldSpec(type="Number")))
        assert content_signature(first) != content_signature(FieldSpec(type="String"))

    def test_bytes_patterns(self):
        assert content_signature(re.compile(rb"^a")) != content_signature(re.compile("^a"))

    def test_options_participate(self):
        assert content_signature({"a": 1}, {"strict_mode": True}) != content_signature({"a": 1}, {"strict_mode": False})

    def test_cycles_are_rejected(self):
        definition = {"name": {"type": "String"}}
        definition["self"] = definition
        with pytest.raises(InvalidDefinitionError):
            content_signature(definition)

    def test_shared_substructures_are_not_cycles(self):
        shared = {"type": "String"}
        content_signature({"a": shared, "b": shared})


class TestBoundedSchemaCache:
    """LRU and TTL bounds."""

    def test_lru_eviction(self):
        cache = BoundedSchemaCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.get("a") == 1
        cache.set("c", 3)
        assert "b" not in cache
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_ttl_expiry(self):
        clock = FakeClock()
        cache = BoundedSchemaCache(max_size=None, ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        clock.now = 5
        assert cache.get("a") == 1
        clock.now = 10
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_len_drops_expired_entries(self):
        clock = FakeClock()
        cache = BoundedSchemaCache(ttl_seconds=1, clock=clock)
        cache.set("a", 1)
        clock.now = 2
        assert len(cache) == 0

    def test_unbounded(self):
        cache = BoundedSchemaCache(max_size=None)
        for i in range(1000):
            cache.set(str(i), i)
        assert len(cache) == 1000

    @pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"ttl_seconds": 0}, {"ttl_seconds": -1}])
    def test_invalid_bounds(self, kwargs):
        with pytest.raises(ValueError):
            BoundedSchemaCache(**kwargs)

    def test_clear(self):
        cache = BoundedSchemaCache()
        cache.get_or_compile("a", lambda: 1)
        cache.clear()
        assert len(cache) == 0
        assert cache.stats() == {"size": 0, "hits": 0, "misses": 0}


class TestGetOrCompile:
    """Atomic lookup-then-insert."""

    def test_factory_runs_once(self):
        cache = BoundedSchemaCache()
        calls = []
        value = object()

        def factory():
            calls.append(1)
            return value

        assert cache.get_or_compile("k", factory) is value
        assert cache.get_or_compile("k", factory) is value
        assert len(calls) == 1
        assert cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_factory_errors_are_not_cached(self):
        cache = BoundedSchemaCache()

        def broken():
            raise InvalidDefinitionError("bad")

        with pytest.raises(InvalidDefinitionError):
            cache.get_or_compile("k", broken)
        assert len(cache) == 0

    def test_concurrent_callers_compile_once(self):
        cache = BoundedSchemaCache()
        calls = []
        barrier = threading.Barrier(8)
        results = []

        def factory():
            calls.append(1)
            return object()

        def worker():
            barrier.wait()
            results.append(cache.get_or_compile("k", factory))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len({id(result) for result in results}) == 1


class TestDefaultCache:
    """Process-wide cache configured from settings."""

    def test_is_shared(self):
        assert get_default_cache() is get_default_cache()

    def test_bounds_from_environment(self, monkeypatch):
        monkeypatch.setenv("DUALSCHEMA_SCHEMA_CACHE_MAX_SIZE", "3")
        monkeypatch.setenv("DUALSCHEMA_SCHEMA_CACHE_TTL_SECONDS", "60")
        cache = get_default_cache()
        assert cache.max_size == 3
        assert cache.ttl_seconds == 60
