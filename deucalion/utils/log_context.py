"""Lightweight structured logging context helper.

Provides contextual fields (via contextvars) that are injected into log
records by setup_logging. Each Periodic Runner thread starts with an empty
context, so fields pushed by one poller never leak into another.

Context fields (stable keys):
- poller: name of the poller running the current pass
- region: AWS region the poller targets
- pass_no: sequence number of the reconciliation pass

Usage:
  from deucalion.utils import log_context as lc
  with lc.push_context(poller='instances', pass_no=5):
      logging.info('Polling...')
"""
from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

CONTEXT_KEYS = ("poller", "region", "pass_no")

_CTX: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("deucalion_log_ctx", default={})


def get_context() -> dict[str, Any]:
    """Return a shallow copy of the current context dict."""
    ctx = _CTX.get()
    return dict(ctx) if ctx else {}


@contextmanager
def push_context(**fields: Any) -> Iterator[None]:
    """Temporarily add/override context fields within a block."""
    prev = _CTX.get()
    cur = dict(prev)
    cur.update({k: v for k, v in fields.items() if v is not None})
    token = _CTX.set(cur)
    try:
        yield
    finally:
        _CTX.reset(token)


__all__ = ["CONTEXT_KEYS", "get_context", "push_context"]
