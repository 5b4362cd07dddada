"""Settings loading and validation."""
from .settings import (
    DeucalionSettings,
    InstancesPollerSettings,
    ScrapeSettings,
    SpotPricesPollerSettings,
    load_settings,
    settings_from_dict,
)
from .validation import ConfigError

__all__ = [
    "ConfigError",
    "DeucalionSettings",
    "InstancesPollerSettings",
    "ScrapeSettings",
    "SpotPricesPollerSettings",
    "load_settings",
    "settings_from_dict",
]
