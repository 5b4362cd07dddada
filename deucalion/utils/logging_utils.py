"""Unified logging utilities for Deucalion."""
from __future__ import annotations

import json
import logging
import os
import sys
import time

from . import log_context
from .env_flags import is_truthy_env

DEFAULT_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'
# Minimal console format (message only) used for cleaner terminal output.
MINIMAL_CONSOLE_FORMAT = '%(message)s'

SUPPRESSED_LOGGERS = [
    'botocore', 'boto3', 'urllib3', 's3transfer'
]


class _CtxFilter(logging.Filter):
    """Copy log_context fields onto records so formatters can reference them."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        ctx = log_context.get_context()
        for k in log_context.CONTEXT_KEYS:
            if k in ctx and not hasattr(record, k):
                setattr(record, k, ctx[k])
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            'ts': getattr(record, 'created', time.time()),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'msg': record.getMessage(),
            'ctx': log_context.get_context() or None,
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = 'INFO', log_file: str | None = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Configure root logging.

    Console handler: by default uses minimal message-only format. Override via
    env DEUCALION_VERBOSE_CONSOLE=1 (restores full DEFAULT_FORMAT) or explicitly
    pass a fmt argument. DEUCALION_JSON_LOGS=1 switches the console to one JSON
    object per line.

    File handler (if enabled) always uses full DEFAULT_FORMAT for diagnostics.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    # Remove existing handlers to avoid duplication on re-init
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.flush()
        h.close()

    # Explicit fmt parameter beats env toggles.
    if fmt != DEFAULT_FORMAT:
        console_fmt = fmt
    elif is_truthy_env('DEUCALION_VERBOSE_CONSOLE'):
        console_fmt = DEFAULT_FORMAT
    else:
        console_fmt = MINIMAL_CONSOLE_FORMAT

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.addFilter(_CtxFilter())
    if is_truthy_env('DEUCALION_JSON_LOGS'):
        console.setFormatter(_JsonFormatter())
    else:
        console.setFormatter(logging.Formatter(console_fmt))
    root.addHandler(console)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            fh = logging.FileHandler(log_file, encoding='utf-8')
        except OSError as e:
            root.error("Failed to create log file handler for %s: %s", log_file, e)
        else:
            fh.setLevel(log_level)
            fh.addFilter(_CtxFilter())
            fh.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            root.addHandler(fh)

    for name in SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root

__all__ = ["setup_logging", "DEFAULT_FORMAT", "MINIMAL_CONSOLE_FORMAT"]
