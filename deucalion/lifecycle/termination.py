"""Process termination guard.

The main thread blocks in ``wait()`` until SIGINT or SIGTERM arrives (or
``trigger()`` is called). Signal handlers run on the main thread, possibly
while it holds the guard's lock inside ``wait()``, hence the RLock.
"""
from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterable
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TerminationGuard:
    def __init__(self, poll_interval: float = 1.0) -> None:
        self._cond = threading.Condition(threading.RLock())
        self._terminate = False
        self._poll_interval = poll_interval
        self._previous: dict[int, Any] = {}
        self.signum: int | None = None

    @property
    def triggered(self) -> bool:
        with self._cond:
            return self._terminate

    def install(self, signals: Iterable[int] = DEFAULT_SIGNALS) -> None:
        """Install handlers (main thread only)."""
        for sig in signals:
            self._previous[sig] = signal.signal(sig, self._handle)

    def restore(self) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received signal %s, shutting down gracefully", signal.Signals(signum).name)
        self.signum = signum
        self.trigger()

    def trigger(self) -> None:
        with self._cond:
            self._terminate = True
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until termination is requested; False if *timeout* expired first.

        Waits in short slices so signal handlers get a chance to run on
        platforms where a blocked lock acquisition defers them.
        """
        remaining = timeout
        with self._cond:
            while not self._terminate:
                step = self._poll_interval if remaining is None else min(self._poll_interval, remaining)
                if step <= 0:
                    return False
                self._cond.wait(step)
                if remaining is not None:
                    remaining -= step
            return True

    def __enter__(self) -> TerminationGuard:
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.restore()
        return False


__all__ = ["TerminationGuard", "DEFAULT_SIGNALS"]
