"""Spot price poller.

Exposes ``aws_spot_price{availability_zone, instance_type, product}`` whose
value is the spot price (USD/hour) in effect at the start of the pass. The
three labels together identify a series. Each pass asks for a point-in-time
window (StartTime == EndTime == now) so only the latest sample per
combination comes back.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry

from ..metrics.self_metrics import ExporterMetrics
from ..provider.credentials import CredentialsProviderType, CredentialsProviderWrapper
from ..provider.ec2 import (
    DESCRIBE_SPOT_PRICE_HISTORY,
    SpotPriceHistoryRequestor,
    dry_run,
    spot_price_filters,
    utc_now,
)
from ..provider.errors import PollerError, classify_exception
from .base import AwsGaugePoller, Sample

logger = logging.getLogger(__name__)

SPOT_LABELS = ("availability_zone", "instance_type", "product")


class AwsSpotPricesPoller(AwsGaugePoller):
    METRIC_NAME = "aws_spot_price"
    METRIC_DOC = "Latest AWS spot price in USD per instance hour"
    IDENTITY_LABELS = SPOT_LABELS

    def __init__(self, *, region: str,
                 availability_zones: Sequence[str] = (),
                 product_descriptions: Sequence[str] = (),
                 instance_types: Sequence[str] = (),
                 page_size: int | None = None,
                 credentials_provider: CredentialsProviderType | str | None = None,
                 profile: str | None = None,
                 credentials: CredentialsProviderWrapper | None = None,
                 client_factory: Callable[[], Any] | None = None,
                 registry: CollectorRegistry | None = REGISTRY,
                 metrics: ExporterMetrics | None = None,
                 clock: Callable[[], float] = time.monotonic,
                 now: Callable[[], datetime] = utc_now,
                 name: str = "spot_prices") -> None:
        self.filters = spot_price_filters(availability_zones, product_descriptions, instance_types)
        self._now = now
        super().__init__(
            name, SPOT_LABELS,
            region=region, credentials_provider=credentials_provider, profile=profile,
            credentials=credentials, client_factory=client_factory, page_size=page_size,
            registry=registry, metrics=metrics, clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> AwsSpotPricesPoller:
        return cls(
            region=settings.region,
            availability_zones=settings.availability_zones,
            product_descriptions=settings.product_descriptions,
            instance_types=settings.instance_types,
            page_size=settings.describe_spot_price_history_chunk_size,
            credentials_provider=settings.credentials_provider,
            profile=settings.profile,
            **kwargs,
        )

    def probe(self) -> PollerError | None:
        try:
            client = self.client()
        except Exception as e:
            return classify_exception(e, DESCRIBE_SPOT_PRICE_HISTORY)
        return dry_run(client.describe_spot_price_history, DESCRIBE_SPOT_PRICE_HISTORY)

    def requestor(self) -> SpotPriceHistoryRequestor:
        return SpotPriceHistoryRequestor(self.client(), self.filters, self.page_size, now=self._now)

    def sample_for(self, record: Any) -> Sample | None:
        zone = record.get("AvailabilityZone")
        instance_type = record.get("InstanceType")
        product = record.get("ProductDescription")
        if not zone or not instance_type or not product:
            return None
        try:
            price = float(record.get("SpotPrice"))
        except (TypeError, ValueError):
            logger.debug("Skipping spot price sample with unusable price: %s", record)
            return None
        return {"availability_zone": zone, "instance_type": instance_type, "product": product}, price


__all__ = ["AwsSpotPricesPoller", "SPOT_LABELS"]
