"""Environment flag helpers.

Consolidates the common pattern of interpreting environment variables as boolean
feature flags using the canonical truthy set {"1","true","yes","on"} (case-insensitive).

Usage examples:
    from deucalion.utils.env_flags import is_truthy_env
    if is_truthy_env('DEUCALION_JSON_LOGS'):
        ...
"""
from __future__ import annotations

import os

TRUTHY_SET: set[str] = {"1","true","yes","on"}

def is_truthy(value: str | None) -> bool:
    if not value:
        return False
    return value.strip().lower() in TRUTHY_SET

def is_truthy_env(name: str, default: str | None = None) -> bool:
    return is_truthy(os.getenv(name, default or ''))

def env_list(name: str) -> list[str] | None:
    """Comma separated env value -> stripped non-empty items (None when unset)."""
    raw = os.getenv(name)
    if raw is None:
        return None
    return [part.strip() for part in raw.split(',') if part.strip()]

__all__ = [
    'TRUTHY_SET',
    'is_truthy',
    'is_truthy_env',
    'env_list',
]
