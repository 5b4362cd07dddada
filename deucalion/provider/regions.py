"""Region string validation.

A malformed or unknown region is a startup error (``BadRegion``), so the
lookup happens once when a poller is built rather than on the first call.
"""
from __future__ import annotations

import logging

import boto3
from botocore.exceptions import InvalidRegionError
from botocore.utils import validate_region_name

from .errors import BadRegion

logger = logging.getLogger(__name__)


def known_regions(service: str = "ec2") -> set[str]:
    """All regions botocore's endpoint data lists for *service*, across partitions."""
    session = boto3.session.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions(service, partition_name=partition))
    return regions


def resolve_region(name: str | None, *, service: str = "ec2") -> str:
    """Normalise and validate a region name, raising BadRegion when unusable."""
    region = (name or "").strip().lower()
    if not region:
        raise BadRegion("region is not set")
    try:
        validate_region_name(region)
    except InvalidRegionError as e:
        raise BadRegion(str(e)) from e
    if region not in known_regions(service):
        raise BadRegion(f"Unknown region {region!r} for {service}")
    return region


__all__ = ["known_regions", "resolve_region"]
