from __future__ import annotations

import logging
import os
import sys

import pytest
from prometheus_client import CollectorRegistry

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from _fakes import FakeCredentials, FakeEc2Client  # noqa: E402
from deucalion.metrics import ExporterMetrics  # noqa: E402


@pytest.fixture()
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture()
def exporter_metrics(registry) -> ExporterMetrics:
    return ExporterMetrics(registry)


@pytest.fixture()
def ec2_client() -> FakeEc2Client:
    return FakeEc2Client()


@pytest.fixture()
def fake_credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture(autouse=True)
def _clean_deucalion_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("DEUCALION_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
