from __future__ import annotations

import os
import signal
import threading

import pytest

from deucalion.lifecycle import TerminationGuard


def test_wait_times_out_when_not_triggered():
    guard = TerminationGuard(poll_interval=0.01)
    assert guard.wait(timeout=0.05) is False
    assert not guard.triggered


def test_trigger_from_another_thread_releases_wait():
    guard = TerminationGuard(poll_interval=0.05)
    threading.Timer(0.05, guard.trigger).start()
    assert guard.wait(timeout=5) is True
    assert guard.triggered


def test_wait_returns_immediately_once_triggered():
    guard = TerminationGuard()
    guard.trigger()
    assert guard.wait(timeout=0) is True


@pytest.mark.skipif(not hasattr(signal, "SIGTERM") or os.name == "nt", reason="POSIX signals only")
def test_sigterm_triggers_guard():
    guard = TerminationGuard(poll_interval=0.01)
    before = signal.getsignal(signal.SIGTERM)
    with guard:
        os.kill(os.getpid(), signal.SIGTERM)
        assert guard.wait(timeout=5) is True
    assert guard.signum == signal.SIGTERM
    assert signal.getsignal(signal.SIGTERM) == before
