"""Pytest configuration and fixtures."""

import re
from datetime import datetime

import pytest

from dualschema.cache import BoundedSchemaCache, get_default_cache
from dualschema.config import get_settings


@pytest.fixture(autouse=True)
def reset_process_state():
    """Each test starts with fresh settings and an empty default cache."""
    get_settings.cache_clear()
    get_default_cache.cache_clear()
    yield
    get_settings.cache_clear()
    get_default_cache.cache_clear()


@pytest.fixture
def schema_cache() -> BoundedSchemaCache:
    return BoundedSchemaCache(max_size=8)


@pytest.fixture
def user_definition() -> dict:
    """A realistic user document definition touching most modifiers."""
    return {
        "name": {"type": "String", "required": True, "minlength": 3, "maxlength": 50},
        "age": {"type": "Number", "required": True, "min": 0, "max": 100},
        "email": {"type": "String", "required": True, "unique": True, "email": True},
        "password": {
            "type": "String",
            "required": True,
            "minlength": 8,
            "maxlength": 50,
            "regex": re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[a-zA-Z\d@$!%*?&]{8,}$"),
        },
        "role": {"type": "String", "required": True, "enum": ["user", "admin", "moderator"], "default": "user"},
        "tags": {"type": "Array", "items": {"type": "String"}, "min": 0, "max": 10},
        "profile": {"type": "Object", "required": False},
        "userId": {"type": "ObjectId", "ref": "User", "required": False},
        "createdAt": {"type": "Date", "default": datetime.now},
        "isActive": {"type": "Boolean", "default": True},
        "score": {"type": "Number", "min": 0, "max": 100, "default": 0},
    }


@pytest.fixture
def valid_user() -> dict:
    return {
        "name": "John Doe",
        "age": 25,
        "email": "john@example.com",
        "password": "SecurePass123",
        "role": "user",
        "tags": ["developer", "python"],
        "profile": {"bio": "Software developer", "website": "https://website.com"},
        "score": 85,
        "isActive": True,
    }


@pytest.fixture
def invalid_user() -> dict:
    return {
        "name": "Jo",
        "age": 150,
        "email": "invalid-email",
        "password": "weak",
        "role": "invalid-role",
        "tags": ["ok"],
    }
