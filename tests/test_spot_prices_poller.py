from __future__ import annotations

from datetime import datetime, timezone

import pytest

from _fakes import FakeCredentials, FakeEc2Client, client_error, spot_price
from deucalion.pollers import AwsSpotPricesPoller
from deucalion.provider.errors import InvalidCredentials

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_poller(client, registry, **kwargs):
    return AwsSpotPricesPoller(region="us-east-1", credentials=FakeCredentials(),
                               client_factory=lambda: client, registry=registry,
                               now=lambda: NOW, **kwargs)


def prices(registry):
    out = {}
    for family in registry.collect():
        for sample in family.samples:
            if sample.name == "aws_spot_price":
                key = (sample.labels["availability_zone"], sample.labels["instance_type"], sample.labels["product"])
                out[key] = sample.value
    return out


def test_point_in_time_window_and_filters(registry):
    client = FakeEc2Client(spot_pages=[[spot_price("us-east-1a", "m5.large", "0.0410")]])
    poller = make_poller(client, registry, availability_zones=["us-east-1a"],
                         product_descriptions=["Linux/UNIX"], page_size=100)
    assert client.calls == [("DescribeSpotPriceHistory", {"DryRun": True})]
    poller.poll()
    (call,) = client.data_calls()
    assert call["StartTime"] == call["EndTime"] == NOW
    assert call["MaxResults"] == 100
    assert call["Filters"] == [
        {"Name": "availability-zone", "Values": ["us-east-1a"]},
        {"Name": "product-description", "Values": ["Linux/UNIX"]},
    ]
    assert prices(registry) == {("us-east-1a", "m5.large", "Linux/UNIX"): pytest.approx(0.041)}


def test_no_filters_when_settings_empty(registry):
    client = FakeEc2Client()
    make_poller(client, registry).poll()
    (call,) = client.data_calls()
    assert "Filters" not in call
    assert "MaxResults" not in call


def test_empty_cursor_ends_pagination(registry):
    client = FakeEc2Client(spot_pages=[
        [spot_price("us-east-1a", "m5.large", "0.04")],
        [spot_price("us-east-1b", "m5.large", "0.05")],
    ])
    make_poller(client, registry).poll()
    assert [c.get("NextToken") for c in client.data_calls()] == [None, "t1"]
    assert len(prices(registry)) == 2


def test_price_update_keeps_one_series_and_gone_combos_removed(registry):
    client = FakeEc2Client(spot_pages=[[
        spot_price("us-east-1a", "m5.large", "0.04"),
        spot_price("us-east-1b", "c5.xlarge", "0.07"),
    ]])
    poller = make_poller(client, registry)
    poller.poll()
    client.spot_pages = [[spot_price("us-east-1a", "m5.large", "0.05")]]
    result = poller.poll()
    assert result.removed == 1
    assert prices(registry) == {("us-east-1a", "m5.large", "Linux/UNIX"): pytest.approx(0.05)}


def test_unusable_price_is_skipped(registry):
    client = FakeEc2Client(spot_pages=[[
        spot_price("us-east-1a", "m5.large", "n/a"),
        {"AvailabilityZone": "us-east-1a", "InstanceType": "m5.large", "SpotPrice": "0.1"},
    ]])
    result = make_poller(client, registry).poll()
    assert result.skipped == 2
    assert prices(registry) == {}


def test_auth_failure_probe_fails_construction(registry):
    client = FakeEc2Client(dry_run_error=client_error("AuthFailure", "bad key", "DescribeSpotPriceHistory"))
    with pytest.raises(InvalidCredentials):
        make_poller(client, registry)


def test_failed_page_keeps_previous_prices(registry, exporter_metrics):
    client = FakeEc2Client(spot_pages=[[
        spot_price("us-east-1a", "m5.large", "0.04"),
        spot_price("us-east-1b", "c5.xlarge", "0.07"),
    ]])
    poller = make_poller(client, registry, metrics=exporter_metrics)
    poller.poll()
    client.spot_pages = [[spot_price("us-east-1a", "m5.large", "0.05")], [spot_price("us-east-1c", "m5.large", "0.06")]]
    client.fail_on[1] = client_error("RequestLimitExceeded", "Request limit exceeded.", "DescribeSpotPriceHistory")
    result = poller.poll()
    assert not result.ok and result.removed == 0
    assert prices(registry) == {
        ("us-east-1a", "m5.large", "Linux/UNIX"): pytest.approx(0.05),
        ("us-east-1b", "c5.xlarge", "Linux/UNIX"): pytest.approx(0.07),
    }
    assert registry.get_sample_value("deucalion_poll_errors_total",
                                     {"poller": "spot_prices", "kind": "UnknownError"}) == 1.0
