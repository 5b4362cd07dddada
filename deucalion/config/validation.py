"""Settings validation.

Structural checks use a jsonschema draft-07 schema kept in code; anything a
schema cannot express (label collisions, host:port parsing) is checked by
the settings loader. Every failure surfaces as ``ConfigError`` so startup
can abort with one descriptive message.
"""
from __future__ import annotations

import logging
from typing import Any

import jsonschema

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when settings are missing, malformed or inconsistent."""


_PROVIDER = {
    "type": "string",
    "pattern": "(?i)^(default|environment|profile|instance|container)$",
}
_STRINGS = {"type": "array", "items": {"type": "string", "minLength": 1}}
_PAGE_SIZE = {"type": ["integer", "null"], "minimum": 5, "maximum": 1000}
_SECONDS = {"type": ["number", "null"], "exclusiveMinimum": 0}

_POLLER_COMMON: dict[str, Any] = {
    "credentials_provider": _PROVIDER,
    "profile": {"type": ["string", "null"]},
    "region": {"type": "string", "minLength": 1},
}

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["aws_instances_poller_settings", "scrape_settings"],
    "additionalProperties": False,
    "properties": {
        "aws_instances_poller_settings": {
            "type": "object",
            "required": ["region"],
            "additionalProperties": False,
            "properties": {
                **_POLLER_COMMON,
                "expose_tags": _STRINGS,
                "skip_untagged": {"type": "boolean"},
                "describe_instances_chunk_size": _PAGE_SIZE,
            },
        },
        "aws_spot_prices_poller_settings": {
            "type": ["object", "null"],
            "required": ["region"],
            "additionalProperties": False,
            "properties": {
                **_POLLER_COMMON,
                "availability_zones": _STRINGS,
                "product_descriptions": _STRINGS,
                "instance_types": _STRINGS,
                "describe_spot_price_history_chunk_size": _PAGE_SIZE,
            },
        },
        "scrape_settings": {
            "type": "object",
            "required": ["listen_on"],
            "additionalProperties": False,
            "properties": {
                "polling_period": _SECONDS,
                "listen_on": {"type": "string", "minLength": 1},
                "read_timeout": _SECONDS,
                "keep_alive_timeout": _SECONDS,
            },
        },
    },
}


def validate_settings(raw: Any) -> dict[str, Any]:
    """Validate a parsed settings document; returns it for fluent use."""
    if not isinstance(raw, dict):
        raise ConfigError("settings document must be a mapping")
    validator = jsonschema.Draft7Validator(SETTINGS_SCHEMA)
    errors = sorted(validator.iter_errors(raw), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.path) or "<root>"
        for extra in errors[1:]:
            logger.debug("settings error at %s: %s", "/".join(str(p) for p in extra.path), extra.message)
        raise ConfigError(f"Settings validation error: {first.message} (path: {where})")
    return raw


__all__ = ["ConfigError", "SETTINGS_SCHEMA", "validate_settings"]
