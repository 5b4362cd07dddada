"""Credential provider wrapper.

One uniform capability ("produce a credentials snapshot") over the
credential sourcing strategies botocore knows about:

- Default:     botocore's standard resolution chain
- Environment: AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY / AWS_SESSION_TOKEN
- Profile:     shared credentials file profile
- Instance:    EC2 instance metadata (IMDS) role credentials
- Container:   ECS/EKS container-injected credentials

Construction fails immediately when a strategy cannot be initialised (for
instance a malformed shared credentials file). Snapshots are never cached
here: every call to ``load()`` goes back to the underlying provider, which
keeps whatever refresh schedule botocore mandates for it.
"""
from __future__ import annotations

import enum
import logging
import os
from collections.abc import Callable
from typing import Any

import boto3
import botocore.session
from botocore.configloader import raw_config_parse
from botocore.credentials import (
    ContainerProvider,
    CredentialProvider,
    CredentialResolver,
    Credentials,
    EnvProvider,
    InstanceMetadataProvider,
    ReadOnlyCredentials,
    SharedCredentialProvider,
    create_credential_resolver,
)
from botocore.exceptions import ConfigParseError, NoCredentialsError, ProfileNotFound
from botocore.utils import InstanceMetadataFetcher

from .errors import InvalidCredentials, PollerError, classify_exception
from .logging_events import emit_event

logger = logging.getLogger(__name__)

DEFAULT_SHARED_CREDENTIALS_FILE = "~/.aws/credentials"
DEFAULT_PROFILE = "default"


class CredentialsProviderType(enum.Enum):
    DEFAULT = "Default"
    ENVIRONMENT = "Environment"
    PROFILE = "Profile"
    INSTANCE = "Instance"
    CONTAINER = "Container"

    @classmethod
    def parse(cls, value: str | CredentialsProviderType | None) -> CredentialsProviderType:
        """Case-insensitive lookup by name or value; None -> DEFAULT."""
        if value is None:
            return cls.DEFAULT
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"unknown credentials provider {value!r}")


class _WrapperCredentialProvider(CredentialProvider):
    """Adapter letting a botocore session resolve credentials through the wrapper."""

    METHOD = "deucalion-wrapper"
    CANONICAL_NAME = "DeucalionWrapper"

    def __init__(self, load: Callable[[], Credentials | None]) -> None:
        super().__init__()
        self._load = load

    def load(self) -> Credentials | None:
        return self._load()


def _shared_credentials_file() -> str:
    return os.path.expanduser(os.environ.get("AWS_SHARED_CREDENTIALS_FILE", DEFAULT_SHARED_CREDENTIALS_FILE))


def _profile_provider(profile: str | None) -> SharedCredentialProvider:
    """Build a shared-file provider, failing fast on a malformed file or missing profile."""
    name = profile or os.environ.get("AWS_PROFILE") or DEFAULT_PROFILE
    path = _shared_credentials_file()
    if os.path.isfile(path):
        parsed = raw_config_parse(path)  # raises ConfigParseError when malformed
        if name not in parsed:
            raise ProfileNotFound(profile=name)
    return SharedCredentialProvider(creds_filename=path, profile_name=name)


class CredentialsProviderWrapper:
    """Uniform credentials capability over one configured strategy."""

    def __init__(self, provider_type: CredentialsProviderType = CredentialsProviderType.DEFAULT,
                 *, profile: str | None = None, provider: Any = None) -> None:
        self.provider_type = provider_type
        self.profile = profile
        try:
            self._inner = provider if provider is not None else self._build(provider_type, profile)
        except (ConfigParseError, ProfileNotFound) as e:
            raise InvalidCredentials(str(e)) from e

    @staticmethod
    def _build(provider_type: CredentialsProviderType, profile: str | None) -> Any:
        if provider_type is CredentialsProviderType.DEFAULT:
            return create_credential_resolver(botocore.session.Session())
        if provider_type is CredentialsProviderType.ENVIRONMENT:
            return EnvProvider()
        if provider_type is CredentialsProviderType.PROFILE:
            return _profile_provider(profile)
        if provider_type is CredentialsProviderType.INSTANCE:
            return InstanceMetadataProvider(iam_role_fetcher=InstanceMetadataFetcher(timeout=1, num_attempts=2))
        if provider_type is CredentialsProviderType.CONTAINER:
            return ContainerProvider()
        raise ValueError(f"unsupported credentials provider {provider_type!r}")

    def load(self) -> Credentials | None:
        """Resolve credentials from the underlying strategy (None when unavailable)."""
        if isinstance(self._inner, CredentialResolver):
            return self._inner.load_credentials()
        return self._inner.load()

    def credentials(self) -> ReadOnlyCredentials:
        """Return a credentials snapshot or raise NoCredentialsError."""
        creds = self.load()
        if creds is None:
            raise NoCredentialsError()
        return creds.get_frozen_credentials()

    def validate(self) -> None:
        """Fetch one snapshot so a poller never starts without usable credentials."""
        try:
            self.credentials()
        except PollerError:
            raise
        except Exception as e:
            err = classify_exception(e)
            emit_event(logger, "credentials.validate", provider=self.provider_type.value, status="fail", kind=err.kind)
            raise err from e
        emit_event(logger, "credentials.validate", provider=self.provider_type.value, status="ok")

    def session(self, region: str) -> boto3.Session:
        """boto3 session whose credentials always resolve through this wrapper."""
        core = botocore.session.Session()
        core.register_component("credential_provider", CredentialResolver(providers=[_WrapperCredentialProvider(self.load)]))
        return boto3.Session(botocore_session=core, region_name=region)

    def client(self, service: str, region: str) -> Any:
        return self.session(region).client(service)


__all__ = [
    "CredentialsProviderType",
    "CredentialsProviderWrapper",
]
