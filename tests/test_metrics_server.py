from __future__ import annotations

import contextlib
import gzip
import http.client
import urllib.error
import urllib.request

import pytest
from prometheus_client import Gauge

from deucalion.metrics import MetricsServer


@pytest.fixture()
def server(registry, exporter_metrics):
    srv = MetricsServer("127.0.0.1", 0, registry, metrics=exporter_metrics, read_timeout=5)
    srv.start()
    yield srv
    srv.stop()


def url(srv, path):
    host, port = srv.address
    return f"http://{host}:{port}{path}"


def test_metrics_endpoint_serves_registry(server, registry):
    g = Gauge("aws_instance_state", "state", ["id"], registry=registry)
    g.labels(id="i-1").set(1.0)
    with contextlib.closing(urllib.request.urlopen(url(server, "/metrics"), timeout=5)) as resp:  # noqa: S310 - local test server
        body = resp.read().decode()
        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/plain")
    assert 'aws_instance_state{id="i-1"} 1.0' in body


def test_each_scrape_is_counted(server, registry):
    for path in ("/metrics", "/", "/metrics?x=1"):
        with contextlib.closing(urllib.request.urlopen(url(server, path), timeout=5)):  # noqa: S310
            pass
    assert registry.get_sample_value("deucalion_scrape_requests_total") == 3.0


def test_unknown_path_is_404(server, registry):
    with pytest.raises(urllib.error.HTTPError) as info:
        urllib.request.urlopen(url(server, "/nope"), timeout=5)  # noqa: S310
    assert info.value.code == 404
    info.value.close()
    assert registry.get_sample_value("deucalion_scrape_requests_total") == 0.0


def test_stop_is_idempotent(registry):
    srv = MetricsServer("127.0.0.1", 0, registry, keep_alive_timeout=1)
    srv.start()
    srv.stop()
    srv.stop()


def test_openmetrics_and_gzip_are_negotiated(server, registry):
    Gauge("aws_spot_price", "price", ["availability_zone"], registry=registry).labels(
        availability_zone="us-east-1a").set(0.04)
    req = urllib.request.Request(url(server, "/metrics"), headers={
        "Accept": "application/openmetrics-text; version=1.0.0; charset=utf-8",
        "Accept-Encoding": "gzip",
    })
    with contextlib.closing(urllib.request.urlopen(req, timeout=5)) as resp:  # noqa: S310
        assert resp.headers["Content-Encoding"] == "gzip"
        assert resp.headers["Content-Type"].startswith("application/openmetrics-text")
        body = gzip.decompress(resp.read()).decode()
    assert 'aws_spot_price{availability_zone="us-east-1a"} 0.04' in body
    assert body.endswith("# EOF\n")


def test_name_filter(server, registry):
    Gauge("aws_instance_state", "state", ["id"], registry=registry).labels(id="i-1").set(1.0)
    with contextlib.closing(urllib.request.urlopen(url(server, "/metrics?name[]=aws_instance_state"), timeout=5)) as resp:  # noqa: S310
        body = resp.read().decode()
    assert "aws_instance_state" in body
    assert "deucalion_scrape_requests_total" not in body


def test_keep_alive_serves_several_requests_on_one_connection(registry, exporter_metrics):
    srv = MetricsServer("127.0.0.1", 0, registry, metrics=exporter_metrics, keep_alive_timeout=5)
    srv.start()
    host, port = srv.address
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        for _ in range(2):
            conn.request("GET", "/metrics")
            resp = conn.getresponse()
            body = resp.read()
            assert resp.status == 200
            assert int(resp.headers["Content-Length"]) == len(body)
            assert resp.version == 11
    finally:
        conn.close()
        srv.stop()
    assert registry.get_sample_value("deucalion_scrape_requests_total") == 2.0
