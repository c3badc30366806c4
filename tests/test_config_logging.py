"""Tests for settings and logging setup."""

import logging

import pytest

from dualschema.config import Settings, get_settings
from dualschema.logging import (
    LoggerRegistry,
    _censor_sensitive_keys,
    cache_logger,
    compiler_logger,
    configure_logging,
)


class TestSettings:
    """Environment-driven settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.SCHEMA_CACHE_MAX_SIZE == 512
        assert settings.SCHEMA_CACHE_TTL_SECONDS is None
        assert settings.LOG_LEVEL == "INFO"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DUALSCHEMA_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("DUALSCHEMA_LOG_JSON", "true")
        settings = get_settings()
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.LOG_JSON is True


class TestLogging:
    """structlog configuration and domain loggers."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_configure_sets_level(self):
        configure_logging(level="WARNING", json_logs=True)
        assert logging.getLogger().level == logging.WARNING
        assert len(logging.getLogger().handlers) == 1

    def test_domain_loggers_are_registered_once(self):
        assert compiler_logger() is compiler_logger()
        assert "compiler" in LoggerRegistry._loggers
        assert cache_logger() is not compiler_logger()

    def test_sensitive_keys_redacted(self):
        event = _censor_sensitive_keys(None, "info", {"event": "x", "password": "hunter2", "nested": {"token": "t"}})
        assert event["password"] == "[REDACTED]"
        assert event["nested"]["token"] == "[REDACTED]"
        assert event["event"] == "x"
