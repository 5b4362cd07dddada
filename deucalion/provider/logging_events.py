"""Structured event logging helpers for pollers and runners."""
from __future__ import annotations

import logging
from typing import Any

__all__ = ["emit_event"]

def emit_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured event.

    Format: event key=value key=value (values already stringified lightly)
    Intended for easy grep / downstream parsing.
    """
    parts = [event]
    for k, v in fields.items():
        if isinstance(v, (list, tuple, set, frozenset)):
            v = ",".join(str(x) for x in v)
        elif isinstance(v, float):
            v = f"{v:.3f}"
        parts.append(f"{k}={v}")
    logger.log(level, " ".join(parts))
