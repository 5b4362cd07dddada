#!/usr/bin/env python3
"""Deucalion entrypoint: poll EC2 fleet state and expose it to Prometheus.

Startup is all-or-nothing. Settings, region, credentials and the dry-run
probe of every poller are checked before anything is served; the first
failure is logged and the process exits with status 1.

Shutdown (SIGINT/SIGTERM) stops the runners in reverse construction order,
each after its in-flight pass completes, then the exposition server.
"""
from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from dotenv import find_dotenv, load_dotenv
from prometheus_client import CollectorRegistry

from .config import ConfigError, DeucalionSettings, load_settings
from .config.settings import DEFAULT_CONFIG_PATH
from .lifecycle import TerminationGuard
from .metrics import ExporterMetrics, MetricsServer
from .orchestrator import PeriodicRunner
from .pollers import AwsInstancesPoller, AwsSpotPricesPoller, Poller
from .provider.errors import PollerError
from .utils import setup_logging
from .version import get_version

logger = logging.getLogger(__name__)


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="deucalion", description="Deucalion - AWS fleet state exporter")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH,
                        help=f"Path to the YAML settings file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="INFO", help="Set the logging level")
    parser.add_argument("--log-file", default=None, help="Optional path to a log file")
    parser.add_argument("--version", action="version", version=f"Deucalion {get_version()}")
    return parser.parse_args(argv)


def build_pollers(settings: DeucalionSettings, registry: CollectorRegistry,
                  metrics: ExporterMetrics | None = None) -> list[Poller]:
    """Construct every configured poller; raises the first construction error."""
    pollers: list[Poller] = [
        AwsInstancesPoller.from_settings(settings.instances, registry=registry, metrics=metrics),
    ]
    if settings.spot_prices is not None:
        pollers.append(AwsSpotPricesPoller.from_settings(settings.spot_prices, registry=registry, metrics=metrics))
    return pollers


def run(settings: DeucalionSettings, guard: TerminationGuard,
        registry: CollectorRegistry | None = None) -> int:
    registry = registry if registry is not None else CollectorRegistry()
    metrics = ExporterMetrics(registry)
    try:
        pollers = build_pollers(settings, registry, metrics)
    except PollerError as e:
        logger.error("Failed to initialize poller: %s", e)
        return 1

    scrape = settings.scrape
    try:
        server = MetricsServer(scrape.host, scrape.port, registry, metrics=metrics,
                               read_timeout=scrape.read_timeout, keep_alive_timeout=scrape.keep_alive_timeout)
    except OSError as e:
        logger.error("Failed to listen on %s: %s", scrape.listen_on, e)
        return 1
    server.start()
    runners: list[PeriodicRunner] = []
    try:
        for poller in pollers:
            runner = PeriodicRunner(poller, scrape.polling_period, metrics=metrics)
            runner.start()
            runners.append(runner)
        logger.info("Deucalion is running on %s. Press Ctrl+C to stop.", scrape.listen_on)
        guard.wait()
    finally:
        logger.info("Shutting down Deucalion")
        for runner in reversed(runners):
            runner.stop()
        server.stop()
        logger.info("Shutdown complete")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_arguments(argv)
    load_dotenv(find_dotenv(usecwd=True))
    setup_logging(args.log_level, log_file=args.log_file)
    logger.info("Deucalion %s starting up", get_version())
    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    guard = TerminationGuard()
    with guard:
        return run(settings, guard)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
