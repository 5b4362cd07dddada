"""Exporter self-observability metrics.

Registered into the same CollectorRegistry as the fleet gauges so one
scrape returns both the mirrored state and how well the mirroring works:

 - deucalion_poll_duration_seconds{poller}      Histogram, one sample per pass
 - deucalion_poll_errors_total{poller,kind}      Counter, aborted passes
 - deucalion_poll_series_removed_total{poller}   Counter, series deleted at commit
 - deucalion_poll_overruns_total{poller}         Counter, passes longer than the period
 - deucalion_scrape_requests_total               Counter, exposition requests served
"""
from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

DEFAULT_NAMESPACE = "deucalion"


class ExporterMetrics:
    def __init__(self, registry: CollectorRegistry = REGISTRY, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.registry = registry
        self.poll_duration = Histogram(
            f"{namespace}_poll_duration_seconds",
            "Wall time of one reconciliation pass",
            ["poller"],
            registry=registry,
        )
        self.poll_errors = Counter(
            f"{namespace}_poll_errors",
            "Reconciliation passes aborted by a classified error",
            ["poller", "kind"],
            registry=registry,
        )
        self.series_removed = Counter(
            f"{namespace}_poll_series_removed",
            "Series removed because their resource was no longer observed",
            ["poller"],
            registry=registry,
        )
        self.overruns = Counter(
            f"{namespace}_poll_overruns",
            "Passes that took at least the configured polling period",
            ["poller"],
            registry=registry,
        )
        self.scrape_requests = Counter(
            f"{namespace}_scrape_requests",
            "Metric exposition requests served",
            registry=registry,
        )


__all__ = ["ExporterMetrics", "DEFAULT_NAMESPACE"]
