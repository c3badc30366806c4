"""Message Synthesis

Human-readable diagnostics for validation rules that carry no explicit
message. Custom messages are looked up under ``"<field>.<rule>"``; otherwise a
default template for the rule kind applies. Every function here is pure.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Callable

from dualschema.patterns import PASSWORD_SYMBOLS, pattern_source

DEFAULT_TEMPLATES: dict[str, Callable[[str, Any], str]] = {
    "required": lambda field, value: f"{field} is required",
    "min": lambda field, value: f"{field} must be at least {value}",
    "max": lambda field, value: f"{field} must be at most {value}",
    "minlength": lambda field, value: f"{field} must be at least {value} characters",
    "maxlength": lambda field, value: f"{field} must be at most {value} characters",
    "email": lambda field, value: f"{field} must be a valid email address",
    "regex": lambda field, value: f"{field} format is invalid",
    "enum": lambda field, value: f"{field} must be one of the allowed values",
}

STRONG_PASSWORD_MESSAGE = (
    "{field} must contain at least one lowercase letter, one uppercase letter, "
    "one number, and one special character"
)


def custom_message(field_name: str, rule: str, custom_messages: Mapping[str, str] | None) -> str | None:
    """Explicit override for a rule, if one was supplied."""
    if not custom_messages:
        return None
    return custom_messages.get(f"{field_name}.{rule}") or None


def synthesize_message(
    field_name: str,
    rule: str,
    value: Any = None,
    custom_messages: Mapping[str, str] | None = None,
    fallback: str | None = None,
) -> str:
    """Resolve the message for a rule: custom, then caller fallback, then template."""
    if message := custom_message(field_name, rule, custom_messages):
        return message
    if fallback is not None:
        return fallback
    if template := DEFAULT_TEMPLATES.get(rule):
        return template(field_name, value)
    return f"{field_name} validation failed"


def password_rule_message(field_name: str) -> str:
    """Fixed message for the synthesized strong-password pattern."""
    return STRONG_PASSWORD_MESSAGE.format(field=field_name) + f" ({PASSWORD_SYMBOLS})."


def pattern_message(
    field_name: str,
    pattern: str | re.Pattern,
    custom_messages: Mapping[str, str] | None = None,
) -> str:
    """Message for an explicit pattern rule.

    Guesses intent from the field name and the pattern text when no custom
    message exists. Checks run in order; the first match wins.
    """
    if message := custom_message(field_name, "regex", custom_messages):
        return message

    name = field_name.lower()
    source, _ = pattern_source(pattern)

    if "email" in name or "@" in source:
        return f"{field_name} must be a valid email address"
    if "password" in name or r"(?=.*\d)" in source:
        return STRONG_PASSWORD_MESSAGE.format(field=field_name) + "."
    if "phone" in name or r"\d" in source:
        return f"{field_name} must be a valid phone number"
    if "url" in name or "http" in source:
        return f"{field_name} must be a valid URL"
    return DEFAULT_TEMPLATES["regex"](field_name, source)
