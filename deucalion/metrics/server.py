"""Metric exposition HTTP server.

Endpoints:
 - /metrics (and /) -> every collector of the registry, served by
   prometheus_client's MetricsHandler (text or OpenMetrics by Accept header,
   gzip by Accept-Encoding, ``name[]`` filtering)
 - anything else    -> 404

Each request gathers the registry afresh; prometheus_client guards each
metric family with its own lock, so a scrape never observes a half-applied
upsert or removal. The server runs in a background thread when started.
"""
from __future__ import annotations

import io
import logging
import threading
from http.server import ThreadingHTTPServer
from typing import Any
from urllib.parse import urlparse

from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_client.exposition import MetricsHandler

from ..provider.logging_events import emit_event
from .self_metrics import ExporterMetrics

logger = logging.getLogger(__name__)

METRICS_PATHS = ("/", "/metrics")


class _Handler(MetricsHandler):
    scrape_counter: Any = None

    def log_message(self, format: str, *args) -> None:  # noqa: A003 - BaseHTTPRequestHandler API
        logger.debug("scrape %s - %s", self.address_string(), format % args)

    def _not_found(self) -> None:
        body = b"not found\n"
        self.send_response(404)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:  # noqa: N802 - stdlib API
        if urlparse(self.path or "/").path not in METRICS_PATHS:
            self._not_found()
            return
        if self.scrape_counter is not None:
            self.scrape_counter.inc()
        if self.protocol_version == "HTTP/1.0":
            super().do_GET()
            return
        # MetricsHandler sends no Content-Length; a kept-alive connection needs one.
        out, self.wfile = self.wfile, io.BytesIO()
        try:
            super().do_GET()
            raw = self.wfile.getvalue()
        finally:
            self.wfile = out
        head, _, body = raw.partition(b"\r\n\r\n")
        out.write(head + f"\r\nContent-Length: {len(body)}\r\n\r\n".encode("latin-1") + body)


class MetricsServer:
    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 9090,
        registry: CollectorRegistry = REGISTRY,
        *,
        metrics: ExporterMetrics | None = None,
        read_timeout: float | None = None,
        keep_alive_timeout: float | None = None,
    ) -> None:
        attrs: dict[str, Any] = {
            "timeout": read_timeout,
            "scrape_counter": metrics.scrape_requests if metrics is not None else None,
        }
        if keep_alive_timeout:
            # HTTP/1.1 keeps the connection open; the socket timeout bounds idle time between requests.
            attrs["protocol_version"] = "HTTP/1.1"
            attrs["timeout"] = max(read_timeout or 0.0, keep_alive_timeout)
        handler = type("_DeucalionMetricsHandler", (_Handler.factory(registry),), attrs)
        self._server = ThreadingHTTPServer((host, port), handler)
        self._server.daemon_threads = True
        self._thread: threading.Thread | None = None
        self._closed = False
    @property
    def address(self) -> tuple[str, int]:
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._server.serve_forever, name="MetricsServer", daemon=True)
        self._thread.start()
        host, port = self.address
        emit_event(logger, "server.start", host=host, port=port)

    def stop(self) -> None:
        """Shutdown server and fully close underlying socket.

        Idempotent: safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
        self._server.server_close()

    def __enter__(self) -> MetricsServer:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.stop()
        return False


__all__ = ["MetricsServer", "METRICS_PATHS"]
