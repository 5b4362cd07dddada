"""Immutable settings snapshot built from a YAML file plus environment overrides.

File layout::

    aws_instances_poller_settings:
      credentials_provider: Default      # Default|Environment|Profile|Instance|Container
      profile: null                      # Profile strategy only
      region: us-east-1
      expose_tags: [Name, Team]
      skip_untagged: false
      describe_instances_chunk_size: 100
    aws_spot_prices_poller_settings:     # optional
      region: us-east-1
      availability_zones: []
      product_descriptions: [Linux/UNIX]
      instance_types: []
    scrape_settings:
      polling_period: 60
      listen_on: 0.0.0.0:9090
      read_timeout: 5
      keep_alive_timeout: 5

Environment overrides (applied after the file, ``.env`` already loaded):
  DEUCALION_POLLING_PERIOD       seconds between pass starts
  DEUCALION_LISTEN_ON            host:port of the exposition server
  DEUCALION_READ_TIMEOUT         seconds
  DEUCALION_KEEP_ALIVE_TIMEOUT   seconds
  DEUCALION_REGION               region for every poller
  DEUCALION_CREDENTIALS_PROVIDER strategy for every poller
  DEUCALION_EXPOSE_TAGS          comma list replacing expose_tags
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from ..pollers.instances import FIXED_LABELS
from ..pollers.labels import expose_label_names
from ..provider.credentials import CredentialsProviderType
from ..utils.env_flags import env_list
from .validation import ConfigError, validate_settings

logger = logging.getLogger(__name__)

DEFAULT_POLLING_PERIOD = 60.0
DEFAULT_CONFIG_PATH = "deucalion.yaml"


@dataclass(frozen=True)
class InstancesPollerSettings:
    region: str
    credentials_provider: CredentialsProviderType = CredentialsProviderType.DEFAULT
    profile: str | None = None
    expose_tags: tuple[str, ...] = ()
    skip_untagged: bool = False
    describe_instances_chunk_size: int | None = None


@dataclass(frozen=True)
class SpotPricesPollerSettings:
    region: str
    credentials_provider: CredentialsProviderType = CredentialsProviderType.DEFAULT
    profile: str | None = None
    availability_zones: tuple[str, ...] = ()
    product_descriptions: tuple[str, ...] = ()
    instance_types: tuple[str, ...] = ()
    describe_spot_price_history_chunk_size: int | None = None


@dataclass(frozen=True)
class ScrapeSettings:
    host: str
    port: int
    polling_period: float = DEFAULT_POLLING_PERIOD
    read_timeout: float | None = None
    keep_alive_timeout: float | None = None

    @property
    def listen_on(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


@dataclass(frozen=True)
class DeucalionSettings:
    instances: InstancesPollerSettings
    scrape: ScrapeSettings
    spot_prices: SpotPricesPollerSettings | None = None
    source: str | None = field(default=None, compare=False)


def parse_listen_on(value: str) -> tuple[str, int]:
    """``host:port`` (``[v6]:port`` for IPv6) -> (host, port)."""
    host, sep, port_s = value.strip().rpartition(":")
    if not sep or not host:
        raise ConfigError(f"listen_on must be host:port, got {value!r}")
    host = host[1:-1] if host.startswith("[") and host.endswith("]") else host
    try:
        port = int(port_s)
    except ValueError:
        raise ConfigError(f"listen_on port is not a number: {value!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"listen_on port out of range: {value!r}")
    return host, port


def _provider(value: Any) -> CredentialsProviderType:
    try:
        return CredentialsProviderType.parse(value)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def _env_seconds(name: str, current: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return current
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _instances(raw: dict[str, Any]) -> InstancesPollerSettings:
    return InstancesPollerSettings(
        region=raw["region"],
        credentials_provider=_provider(raw.get("credentials_provider")),
        profile=raw.get("profile"),
        expose_tags=tuple(raw.get("expose_tags") or ()),
        skip_untagged=bool(raw.get("skip_untagged", False)),
        describe_instances_chunk_size=raw.get("describe_instances_chunk_size"),
    )


def _spot_prices(raw: dict[str, Any] | None) -> SpotPricesPollerSettings | None:
    if raw is None:
        return None
    return SpotPricesPollerSettings(
        region=raw["region"],
        credentials_provider=_provider(raw.get("credentials_provider")),
        profile=raw.get("profile"),
        availability_zones=tuple(raw.get("availability_zones") or ()),
        product_descriptions=tuple(raw.get("product_descriptions") or ()),
        instance_types=tuple(raw.get("instance_types") or ()),
        describe_spot_price_history_chunk_size=raw.get("describe_spot_price_history_chunk_size"),
    )


def _scrape(raw: dict[str, Any]) -> ScrapeSettings:
    host, port = parse_listen_on(raw["listen_on"])
    period = raw.get("polling_period")
    return ScrapeSettings(
        host=host,
        port=port,
        polling_period=float(period) if period is not None else DEFAULT_POLLING_PERIOD,
        read_timeout=raw.get("read_timeout"),
        keep_alive_timeout=raw.get("keep_alive_timeout"),
    )


def apply_env_overrides(settings: DeucalionSettings) -> DeucalionSettings:
    scrape = settings.scrape
    listen_on = os.getenv("DEUCALION_LISTEN_ON")
    if listen_on:
        host, port = parse_listen_on(listen_on)
        scrape = replace(scrape, host=host, port=port)
    scrape = replace(
        scrape,
        polling_period=_env_seconds("DEUCALION_POLLING_PERIOD", scrape.polling_period),
        read_timeout=_env_seconds("DEUCALION_READ_TIMEOUT", scrape.read_timeout),
        keep_alive_timeout=_env_seconds("DEUCALION_KEEP_ALIVE_TIMEOUT", scrape.keep_alive_timeout),
    )

    instances = settings.instances
    spot = settings.spot_prices
    region = (os.getenv("DEUCALION_REGION") or "").strip()
    provider_raw = (os.getenv("DEUCALION_CREDENTIALS_PROVIDER") or "").strip()
    common: dict[str, Any] = {}
    if region:
        common["region"] = region
    if provider_raw:
        common["credentials_provider"] = _provider(provider_raw)
    if common:
        instances = replace(instances, **common)
        spot = replace(spot, **common) if spot is not None else None
    tags = env_list("DEUCALION_EXPOSE_TAGS")
    if tags is not None:
        instances = replace(instances, expose_tags=tuple(tags))

    return replace(settings, instances=instances, spot_prices=spot, scrape=scrape)


def check_settings(settings: DeucalionSettings) -> DeucalionSettings:
    """Cross-field checks the schema cannot express."""
    try:
        expose_label_names(settings.instances.expose_tags, reserved=FIXED_LABELS)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    return settings


def settings_from_dict(raw: Any, *, source: str | None = None, env: bool = True) -> DeucalionSettings:
    validate_settings(raw)
    settings = DeucalionSettings(
        instances=_instances(raw["aws_instances_poller_settings"]),
        spot_prices=_spot_prices(raw.get("aws_spot_prices_poller_settings")),
        scrape=_scrape(raw["scrape_settings"]),
        source=source,
    )
    if env:
        settings = apply_env_overrides(settings)
    return check_settings(settings)


def load_settings(path: str | os.PathLike[str] = DEFAULT_CONFIG_PATH, *, env: bool = True) -> DeucalionSettings:
    """Load, validate and freeze the settings file at *path*."""
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except FileNotFoundError:
        raise ConfigError(f"Settings file not found: {p}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Settings file {p} is not valid YAML: {e}") from e
    settings = settings_from_dict(raw, source=str(p), env=env)
    logger.debug("Loaded settings from %s", p)
    return settings


__all__ = [
    "DEFAULT_POLLING_PERIOD",
    "DeucalionSettings",
    "InstancesPollerSettings",
    "SpotPricesPollerSettings",
    "ScrapeSettings",
    "ConfigError",
    "apply_env_overrides",
    "load_settings",
    "parse_listen_on",
    "settings_from_dict",
]
