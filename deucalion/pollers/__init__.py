"""Pollers: one per resource kind, each owning one gauge family."""
from .base import AwsGaugePoller, GaugePoller, PassResult, Poller
from .instances import AwsInstancesPoller
from .spot_prices import AwsSpotPricesPoller

__all__ = [
    "Poller",
    "GaugePoller",
    "AwsGaugePoller",
    "PassResult",
    "AwsInstancesPoller",
    "AwsSpotPricesPoller",
]
