"""Periodic runner driving one poller on a fixed period.

State machine::

    Idle -> Running (poll) -> Sleeping (interruptible) -> Running | Terminated

A single worker thread runs a pass, measures its wall time and sleeps for
whatever is left of the period. A pass that takes the whole period or more
is an overrun: it is logged and the next pass starts straight away, with no
catch-up of missed cycles.

The sleep is a wait on a Condition guarding the "terminate requested" flag.
The worker re-checks the flag on every wake and only leaves at that point,
so ``stop()`` never interrupts a pass in flight; it returns once the worker
thread has exited.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ..metrics.self_metrics import ExporterMetrics
from ..pollers.base import Poller
from ..provider.logging_events import emit_event

logger = logging.getLogger(__name__)


class PeriodicRunner:
    def __init__(self, poller: Poller, period: float, *,
                 clock: Callable[[], float] = time.monotonic,
                 metrics: ExporterMetrics | None = None,
                 name: str | None = None) -> None:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period!r}")
        self.poller = poller
        self.period = float(period)
        self.name = name or f"runner-{getattr(poller, 'name', 'poller')}"
        self.metrics = metrics
        self._clock = clock
        self._cond = threading.Condition()
        self._terminate = False
        self._thread: threading.Thread | None = None
        self.passes = 0
        self.overruns = 0

    @property
    def terminate_requested(self) -> bool:
        with self._cond:
            return self._terminate

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        emit_event(logger, "runner.start", runner=self.name, period=self.period)

    def request_termination(self) -> None:
        with self._cond:
            self._terminate = True
            self._cond.notify_all()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def stop(self) -> None:
        """Request termination and block until the worker has exited."""
        self.request_termination()
        self.join()
        emit_event(logger, "runner.stop", runner=self.name, passes=self.passes, overruns=self.overruns)

    def __enter__(self) -> PeriodicRunner:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.stop()
        return False

    # --- worker ----------------------------------------------------------
    def _run(self) -> None:
        while not self.terminate_requested:
            started = self._clock()
            try:
                self.poller.poll()
            except Exception:  # noqa: BLE001 - a broken pass must not kill the worker
                logger.exception("Poll pass raised in %s", self.name)
            self.passes += 1
            elapsed = self._clock() - started
            remaining = self._remaining(elapsed)
            if not self._sleep(remaining):
                break

    def _remaining(self, elapsed: float) -> float:
        if elapsed >= self.period:
            self.overruns += 1
            emit_event(logger, "runner.overrun", level=logging.WARNING,
                       runner=self.name, elapsed=elapsed, period=self.period)
            if self.metrics is not None:
                self.metrics.overruns.labels(poller=getattr(self.poller, "name", self.name)).inc()
            return 0.0
        return self.period - elapsed

    def _sleep(self, remaining: float) -> bool:
        """Wait up to *remaining* seconds; False when termination was requested."""
        deadline = self._clock() + remaining
        with self._cond:
            while not self._terminate:
                left = deadline - self._clock()
                if left <= 0:
                    return True
                # wait() may return early; the loop re-checks both conditions.
                self._cond.wait(left)
            return False


__all__ = ["PeriodicRunner"]
