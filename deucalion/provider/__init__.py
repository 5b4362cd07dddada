"""AWS provider layer: credentials, regions, EC2 requestors and error taxonomy."""
from .credentials import CredentialsProviderType, CredentialsProviderWrapper
from .errors import (
    BadRegion,
    InsufficientPermissions,
    InvalidCredentials,
    NetworkError,
    NoError,
    PollerError,
    UnknownError,
    classify_exception,
)
from .regions import resolve_region

__all__ = [
    "CredentialsProviderType",
    "CredentialsProviderWrapper",
    "PollerError",
    "InvalidCredentials",
    "InsufficientPermissions",
    "BadRegion",
    "NetworkError",
    "UnknownError",
    "NoError",
    "classify_exception",
    "resolve_region",
]
