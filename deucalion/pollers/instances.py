"""Running-instance poller.

Exposes ``aws_instance_state`` with one series (value 1.0) per running
instance::

    aws_instance_state{id, type, platform, lifecycle, availability_zone, <expose tags...>}

Defaults for attributes EC2 omits: platform "linux" (EC2 only reports
"windows"), lifecycle "ondemand" (only spot/scheduled are reported) and an
empty availability zone. Records without InstanceId or InstanceType are
skipped. Records without a Tags field are exposed with empty tag labels,
unless ``skip_untagged`` is set.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry

from ..metrics.self_metrics import ExporterMetrics
from ..provider.credentials import CredentialsProviderType, CredentialsProviderWrapper
from ..provider.ec2 import DESCRIBE_INSTANCES, RUNNING_FILTER, DescribeInstancesRequestor, dry_run
from ..provider.errors import PollerError, classify_exception
from .base import AwsGaugePoller, Sample
from .labels import expose_label_names, tag_labels

logger = logging.getLogger(__name__)

FIXED_LABELS = ("id", "type", "platform", "lifecycle", "availability_zone")
DEFAULT_PLATFORM = "linux"
DEFAULT_LIFECYCLE = "ondemand"


class AwsInstancesPoller(AwsGaugePoller):
    METRIC_NAME = "aws_instance_state"
    METRIC_DOC = "Identifies a running AWS instance"
    IDENTITY_LABELS = ("id",)

    def __init__(self, *, region: str,
                 expose_tags: Sequence[str] = (),
                 skip_untagged: bool = False,
                 page_size: int | None = None,
                 credentials_provider: CredentialsProviderType | str | None = None,
                 profile: str | None = None,
                 credentials: CredentialsProviderWrapper | None = None,
                 client_factory: Callable[[], Any] | None = None,
                 registry: CollectorRegistry | None = REGISTRY,
                 metrics: ExporterMetrics | None = None,
                 clock: Callable[[], float] = time.monotonic,
                 name: str = "instances") -> None:
        self.expose_tags = list(expose_tags)
        # ValueError on a label collision; settings loading reports it as ConfigError first.
        self.tag_label_names = expose_label_names(self.expose_tags, reserved=FIXED_LABELS)
        self.skip_untagged = skip_untagged
        super().__init__(
            name, FIXED_LABELS + tuple(self.tag_label_names),
            region=region, credentials_provider=credentials_provider, profile=profile,
            credentials=credentials, client_factory=client_factory, page_size=page_size,
            registry=registry, metrics=metrics, clock=clock,
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> AwsInstancesPoller:
        return cls(
            region=settings.region,
            expose_tags=settings.expose_tags,
            skip_untagged=settings.skip_untagged,
            page_size=settings.describe_instances_chunk_size,
            credentials_provider=settings.credentials_provider,
            profile=settings.profile,
            **kwargs,
        )

    def probe(self) -> PollerError | None:
        try:
            client = self.client()
        except Exception as e:
            return classify_exception(e, DESCRIBE_INSTANCES)
        return dry_run(client.describe_instances, DESCRIBE_INSTANCES)

    def requestor(self) -> DescribeInstancesRequestor:
        return DescribeInstancesRequestor(self.client(), [RUNNING_FILTER], self.page_size)

    def sample_for(self, record: Any) -> Sample | None:
        instance_id = record.get("InstanceId")
        instance_type = record.get("InstanceType")
        if not instance_id or not instance_type:
            logger.debug("Skipping instance without id/type: %s", instance_id)
            return None
        tags = record.get("Tags")
        if tags is None and self.skip_untagged:
            return None
        labels = {
            "id": instance_id,
            "type": instance_type,
            "platform": record.get("Platform") or DEFAULT_PLATFORM,
            "lifecycle": record.get("InstanceLifecycle") or DEFAULT_LIFECYCLE,
            "availability_zone": (record.get("Placement") or {}).get("AvailabilityZone") or "",
        }
        labels.update(tag_labels(tags, self.expose_tags, self.tag_label_names))
        return labels, 1.0


__all__ = ["AwsInstancesPoller", "FIXED_LABELS"]
