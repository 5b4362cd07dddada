"""Poller error taxonomy and the single classifier feeding it.

Every failure a poller can observe (credential resolution, region parsing,
transport dispatch, EC2 API responses, metric label mismatches) is mapped
into a closed set of error kinds so logs, metrics and startup checks can
branch on the kind instead of brittle string inspection at each call site.

Kinds:
 - InvalidCredentials: credentials missing, rejected or malformed request
 - InsufficientPermissions: credentials valid, IAM policy denies the operation
 - BadRegion: region string does not name a known region
 - NetworkError: request never got a response (DNS, connect, read timeout)
 - UnknownError: anything else, raw message preserved
 - NoError: sentinel for a dry-run request that would have succeeded

``NoError`` reuses the error channel because EC2 reports dry-run success as
a ``DryRunOperation`` failure. It must never be reported as a failure.
"""
from __future__ import annotations

from botocore.exceptions import (
    ClientError,
    ConfigParseError,
    ConnectionError as BotoConnectionError,
    CredentialRetrievalError,
    HTTPClientError,
    InvalidRegionError,
    NoCredentialsError,
    NoRegionError,
    ParamValidationError,
    PartialCredentialsError,
    ProfileNotFound,
    UnknownCredentialError,
)

# Marker phrases searched in the provider's message text, in priority order.
DRY_RUN_MARKER = "DryRunOperation"
UNAUTHORIZED_MARKER = "UnauthorizedOperation"
AUTH_FAILURE_MARKER = "AuthFailure"


class PollerError(Exception):
    """Base poller error (do not raise directly)."""

    kind = "PollerError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}({self.message})" if self.message else self.kind

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.message == other.message  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.message))

class InvalidCredentials(PollerError):
    kind = "InvalidCredentials"

class InsufficientPermissions(PollerError):
    """Carries the denied operation name as message."""
    kind = "InsufficientPermissions"

class BadRegion(PollerError):
    kind = "BadRegion"

class NetworkError(PollerError):
    kind = "NetworkError"

class UnknownError(PollerError):
    kind = "UnknownError"

class NoError(PollerError):
    """Dry-run sentinel: the operation would have succeeded."""
    kind = "NoError"

    def __init__(self, message: str = "No error") -> None:
        super().__init__(message)


_CREDENTIAL_ERRORS = (
    NoCredentialsError,
    PartialCredentialsError,
    CredentialRetrievalError,
    UnknownCredentialError,
    ProfileNotFound,
    ConfigParseError,
)


def classify_message(message: str, operation: str) -> PollerError:
    """Apply the marker rules to a generic provider error message."""
    if DRY_RUN_MARKER in message:
        return NoError()
    if UNAUTHORIZED_MARKER in message:
        return InsufficientPermissions(operation)
    if AUTH_FAILURE_MARKER in message:
        return InvalidCredentials(message)
    return UnknownError(message)


def classify_exception(exc: BaseException, operation: str = "") -> PollerError:
    """Best-effort classification of a raw exception instance.

    Heuristic order:
      1. Explicit subclass already part of taxonomy -> returned unchanged
      2. Transport dispatch failures -> NetworkError
      3. Credential resolution failures -> InvalidCredentials
      4. Region parsing failures -> BadRegion
      5. Request validation failures -> InvalidCredentials
      6. EC2 API errors -> marker rules on "<Code>: <Message>"
      7. Metric label mismatch (ValueError) and anything else -> UnknownError
    """
    if isinstance(exc, PollerError):
        return exc
    if isinstance(exc, (BotoConnectionError, HTTPClientError)):
        return NetworkError(str(exc))
    if isinstance(exc, _CREDENTIAL_ERRORS):
        return InvalidCredentials(str(exc))
    if isinstance(exc, (InvalidRegionError, NoRegionError)):
        return BadRegion(str(exc))
    if isinstance(exc, ParamValidationError):
        return InvalidCredentials(str(exc))
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        text = f"{code}: {error.get('Message', '')}" if code else str(exc)
        return classify_message(text, operation or exc.operation_name)
    return UnknownError(str(exc))


__all__ = [
    "PollerError",
    "InvalidCredentials",
    "InsufficientPermissions",
    "BadRegion",
    "NetworkError",
    "UnknownError",
    "NoError",
    "DRY_RUN_MARKER",
    "UNAUTHORIZED_MARKER",
    "AUTH_FAILURE_MARKER",
    "classify_message",
    "classify_exception",
]
