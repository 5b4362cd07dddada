"""EC2 list-call adapters.

Each requestor turns one page fetch into a single EC2 API call, applying
server-side filters and an optional ``MaxResults`` hint. Provider failures
are classified here (through ``classify_exception``) and raised as
``PollerError`` so the pagination driver can park them in its error slot.

- DescribeInstancesRequestor: running instances only, reservations flattened
- SpotPriceHistoryRequestor: latest spot price sample per (zone, type, product),
  StartTime and EndTime both pinned to "now"
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..pagination import CursorRequestor, Page
from .errors import NoError, PollerError, classify_exception

logger = logging.getLogger(__name__)

DESCRIBE_INSTANCES = "DescribeInstances"
DESCRIBE_SPOT_PRICE_HISTORY = "DescribeSpotPriceHistory"

Record = dict[str, Any]
Filter = dict[str, Any]

RUNNING_FILTER: Filter = {"Name": "instance-state-name", "Values": ["running"]}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def make_filter(name: str, values: Iterable[str] | None) -> Filter | None:
    """EC2 filter dict, or None when *values* is empty (no restriction)."""
    vals = [v for v in (values or []) if v]
    if not vals:
        return None
    return {"Name": name, "Values": vals}


class Ec2Requestor(CursorRequestor[Record]):
    """Shared call/classify plumbing for EC2 paginated operations."""

    operation = ""

    def __init__(self, client: Any, filters: list[Filter] | None = None, max_results: int | None = None) -> None:
        super().__init__()
        self.client = client
        self.filters = [f for f in (filters or []) if f]
        self.max_results = max_results

    def request(self, next_token: str | None) -> dict[str, Any]:
        req: dict[str, Any] = {}
        if self.filters:
            req["Filters"] = self.filters
        if self.max_results is not None:
            req["MaxResults"] = self.max_results
        if next_token:
            req["NextToken"] = next_token
        return req

    def fetch_page(self, next_token: str | None) -> Page[Record]:
        try:
            resp = self.call(**self.request(next_token))
        except (ClientError, BotoCoreError) as e:
            raise classify_exception(e, self.operation) from e
        return Page(records=self.records(resp), next_token=resp.get("NextToken"))

    def call(self, **request: Any) -> dict[str, Any]:
        raise NotImplementedError

    def records(self, resp: dict[str, Any]) -> list[Record]:
        raise NotImplementedError


class DescribeInstancesRequestor(Ec2Requestor):
    operation = DESCRIBE_INSTANCES

    def __init__(self, client: Any, filters: list[Filter] | None = None, max_results: int | None = None) -> None:
        super().__init__(client, filters if filters is not None else [RUNNING_FILTER], max_results)

    def call(self, **request: Any) -> dict[str, Any]:
        return self.client.describe_instances(**request)

    def records(self, resp: dict[str, Any]) -> list[Record]:
        chunk: list[Record] = []
        for reservation in resp.get("Reservations") or []:
            chunk.extend(reservation.get("Instances") or [])
        return chunk


class SpotPriceHistoryRequestor(Ec2Requestor):
    operation = DESCRIBE_SPOT_PRICE_HISTORY

    def __init__(self, client: Any, filters: list[Filter] | None = None, max_results: int | None = None,
                 *, now: Callable[[], datetime] = utc_now) -> None:
        super().__init__(client, filters, max_results)
        # One instant for every page of the pass so pages agree on "latest".
        self.at = now()

    def request(self, next_token: str | None) -> dict[str, Any]:
        req = super().request(next_token)
        req["StartTime"] = self.at
        req["EndTime"] = self.at
        return req

    def call(self, **request: Any) -> dict[str, Any]:
        return self.client.describe_spot_price_history(**request)

    def records(self, resp: dict[str, Any]) -> list[Record]:
        return list(resp.get("SpotPriceHistory") or [])


def spot_price_filters(availability_zones: Iterable[str] | None = None,
                       product_descriptions: Iterable[str] | None = None,
                       instance_types: Iterable[str] | None = None) -> list[Filter]:
    candidates = [
        make_filter("availability-zone", availability_zones),
        make_filter("product-description", product_descriptions),
        make_filter("instance-type", instance_types),
    ]
    return [f for f in candidates if f is not None]


def dry_run(call: Callable[..., Any], operation: str, **request: Any) -> PollerError | None:
    """Issue *call* with DryRun=True; None when it would have succeeded.

    EC2 answers a permitted dry run with a DryRunOperation error, which the
    classifier turns into the NoError sentinel.
    """
    try:
        call(DryRun=True, **request)
    except (ClientError, BotoCoreError) as e:
        err = classify_exception(e, operation)
        return None if isinstance(err, NoError) else err
    return None


__all__ = [
    "DESCRIBE_INSTANCES",
    "DESCRIBE_SPOT_PRICE_HISTORY",
    "RUNNING_FILTER",
    "Ec2Requestor",
    "DescribeInstancesRequestor",
    "SpotPriceHistoryRequestor",
    "make_filter",
    "spot_price_filters",
    "dry_run",
    "utc_now",
]
