"""Poller base classes and the reconciliation pass.

A poller owns one gauge family and keeps it level-triggered: after a
successful pass the family holds exactly one series per resource observed
alive; after a failed pass it holds at least what it held before.

Pass state machine::

    Snapshot -> Fetch/Reconcile (streaming upserts) -> Commit | Abort

- Snapshot: label sets present before the pass (the previous truth).
- Fetch/Reconcile: records are drained through PaginatedIterator; each
  usable record upserts its series and marks its identity as seen.
- Commit (no page error): drop snapshot series whose identity was not
  seen, and series superseded by a new label set for a seen identity.
- Abort (page error): drop nothing. Upserts from pages already fetched
  stay, so a partial pass can grow the family but never shrink it.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from prometheus_client import REGISTRY, CollectorRegistry, Gauge

from ..metrics.self_metrics import ExporterMetrics
from ..pagination import ErrorSlot, PaginatedIterator, PaginatedRequestor
from ..provider.credentials import CredentialsProviderType, CredentialsProviderWrapper
from ..provider.errors import PollerError, classify_exception
from ..provider.logging_events import emit_event
from ..provider.regions import resolve_region
from ..utils import log_context

logger = logging.getLogger(__name__)

Labels = dict[str, str]
Sample = tuple[Labels, float]


@dataclass
class PassResult:
    """Summary statistics returned after a reconciliation pass."""

    poller: str
    found: int = 0
    upserted: int = 0
    skipped: int = 0
    removed: int = 0
    pages: int = 0
    duration: float = 0.0
    error: PollerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, Any]:
        return {
            "poller": self.poller,
            "found": self.found,
            "upserted": self.upserted,
            "skipped": self.skipped,
            "removed": self.removed,
            "pages": self.pages,
            "duration": self.duration,
            "error": self.error.kind if self.error is not None else None,
        }


class Poller(ABC):
    """Anything a PeriodicRunner can drive."""

    name: str = "poller"

    @abstractmethod
    def poll(self) -> PassResult:
        """Run one reconciliation pass. Must not raise for provider failures."""

    @abstractmethod
    def collectors(self) -> list[Any]:
        """Collectors owned by this poller (for registry wiring)."""


class GaugePoller(Poller):
    """Reconciles one labelled gauge family against a paginated remote listing.

    Subclasses declare the family (METRIC_NAME / METRIC_DOC / label names),
    which labels identify a resource, how to build a requestor for a pass,
    and how to turn a record into a (labels, value) sample.
    """

    METRIC_NAME = ""
    METRIC_DOC = ""
    IDENTITY_LABELS: tuple[str, ...] = ("id",)

    def __init__(self, name: str, label_names: Sequence[str], *,
                 registry: CollectorRegistry | None = REGISTRY,
                 metrics: ExporterMetrics | None = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.name = name
        self.label_names = tuple(label_names)
        missing = [n for n in self.IDENTITY_LABELS if n not in self.label_names]
        if missing:
            raise ValueError(f"identity labels {missing} not among label names")
        try:
            # Registered separately so a failed startup check leaves the registry untouched.
            self.gauges = Gauge(self.METRIC_NAME, self.METRIC_DOC, list(self.label_names), registry=None)
        except ValueError as e:
            raise classify_exception(e) from e
        self.registry = registry
        self.metrics = metrics
        self._clock = clock
        self._passes = 0

    def register(self) -> None:
        if self.registry is not None:
            self.registry.register(self.gauges)

    def collectors(self) -> list[Any]:
        return [self.gauges]

    # --- subclass hooks --------------------------------------------------
    @abstractmethod
    def requestor(self) -> PaginatedRequestor[Any]:
        """Fresh requestor for one pass."""

    @abstractmethod
    def sample_for(self, record: Any) -> Sample | None:
        """(labels, value) for a record, or None when required attributes are missing."""

    # --- reconciliation --------------------------------------------------
    def identity(self, labels: Labels) -> tuple[str, ...]:
        return tuple(labels.get(n, "") for n in self.IDENTITY_LABELS)

    def snapshot(self) -> list[Labels]:
        """Label sets currently present in the gauge family."""
        out: list[Labels] = []
        for family in self.gauges.collect():
            for sample in family.samples:
                out.append(dict(sample.labels))
        return out

    def poll(self) -> PassResult:
        self._passes += 1
        with log_context.push_context(poller=self.name, pass_no=self._passes):
            return self._poll()

    def _poll(self) -> PassResult:
        result = PassResult(poller=self.name)
        started = self._clock()
        previous = self.snapshot()
        errors = ErrorSlot()
        seen: set[tuple[str, ...]] = set()
        upserted: set[tuple[str, ...]] = set()

        requestor: PaginatedRequestor[Any] | None
        try:
            requestor = self.requestor()
        except PollerError as e:
            errors.set(e)
            requestor = None
        except (BotoCoreError, ClientError) as e:
            errors.set(classify_exception(e))
            requestor = None

        if requestor is not None:
            pages = PaginatedIterator(requestor, errors)
            for record in pages:
                result.found += 1
                sample = self.sample_for(record)
                if sample is None:
                    result.skipped += 1
                    continue
                labels, value = sample
                try:
                    self.gauges.labels(**labels).set(value)
                except ValueError as e:
                    result.skipped += 1
                    logger.warning("Error %s on %s", classify_exception(e), labels)
                    continue
                result.upserted += 1
                seen.add(self.identity(labels))
                upserted.add(self._values(labels))
            result.pages = pages.pages

        if errors:
            result.error = errors.error
            self._abort(result, errors.error)
        else:
            result.removed = self._commit(previous, seen, upserted)
        result.duration = self._clock() - started
        if self.metrics is not None:
            self.metrics.poll_duration.labels(poller=self.name).observe(result.duration)
        emit_event(logger, "poller.pass.complete", **result.as_dict())
        return result

    def _values(self, labels: Labels) -> tuple[str, ...]:
        return tuple(str(labels[n]) for n in self.label_names)

    def _abort(self, result: PassResult, err: PollerError) -> None:
        emit_event(logger, "poller.pass.abort", level=logging.ERROR,
                   poller=self.name, kind=err.kind, detail=err.message, upserted=result.upserted)
        if self.metrics is not None:
            self.metrics.poll_errors.labels(poller=self.name, kind=err.kind).inc()

    def _commit(self, previous: list[Labels], seen: set[tuple[str, ...]],
                upserted: set[tuple[str, ...]]) -> int:
        removed = 0
        for labels in previous:
            values = self._values(labels)
            if values in upserted:
                continue
            reason = "superseded" if self.identity(labels) in seen else "gone"
            try:
                self.gauges.remove(*values)
            except KeyError:
                logger.warning("Series disappeared before removal: %s", labels)
                continue
            removed += 1
            emit_event(logger, "poller.series.removed", poller=self.name, reason=reason,
                       identity="/".join(self.identity(labels)))
        if removed and self.metrics is not None:
            self.metrics.series_removed.labels(poller=self.name).inc(removed)
        return removed


class AwsGaugePoller(GaugePoller):
    """GaugePoller bound to one region and one credentials strategy.

    Construction fails fast: the region is validated, one credentials
    snapshot is fetched and a dry-run call is made against the list API.
    Any classified error other than the dry-run sentinel aborts startup.
    """

    SERVICE = "ec2"

    def __init__(self, name: str, label_names: Sequence[str], *,
                 region: str,
                 credentials_provider: CredentialsProviderType | str | None = None,
                 profile: str | None = None,
                 credentials: CredentialsProviderWrapper | None = None,
                 client_factory: Callable[[], Any] | None = None,
                 page_size: int | None = None,
                 registry: CollectorRegistry | None = REGISTRY,
                 metrics: ExporterMetrics | None = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__(name, label_names, registry=registry, metrics=metrics, clock=clock)
        self.region = resolve_region(region, service=self.SERVICE)
        if credentials is None:
            credentials = CredentialsProviderWrapper(CredentialsProviderType.parse(credentials_provider), profile=profile)
        self.credentials = credentials
        self._client_factory = client_factory
        self.page_size = page_size
        with log_context.push_context(poller=name, region=self.region):
            self.credentials.validate()
            err = self.probe()
            if err is not None:
                emit_event(logger, "poller.probe", level=logging.ERROR, poller=name, status="fail", kind=err.kind)
                raise err
            emit_event(logger, "poller.probe", poller=name, status="ok")
        self.register()
        emit_event(logger, "poller.init", poller=name, region=self.region,
                   credentials=getattr(getattr(self.credentials, "provider_type", None), "value", "custom"),
                   labels=self.label_names)

    def poll(self) -> PassResult:
        with log_context.push_context(region=self.region):
            return super().poll()

    def client(self) -> Any:
        """Fresh EC2 client; credentials are resolved through the wrapper."""
        if self._client_factory is not None:
            return self._client_factory()
        return self.credentials.client(self.SERVICE, self.region)

    @abstractmethod
    def probe(self) -> PollerError | None:
        """Dry-run the list call; None when it would have succeeded."""


__all__ = ["PassResult", "Poller", "GaugePoller", "AwsGaugePoller", "Labels", "Sample"]
