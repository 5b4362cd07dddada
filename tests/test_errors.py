from __future__ import annotations

import pytest
from botocore.exceptions import (
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    ParamValidationError,
    ReadTimeoutError,
)

from _fakes import client_error
from deucalion.provider.errors import (
    BadRegion,
    InsufficientPermissions,
    InvalidCredentials,
    NetworkError,
    NoError,
    UnknownError,
    classify_exception,
    classify_message,
)


@pytest.mark.parametrize("message,expected", [
    ("DryRunOperation: Request would have succeeded", NoError()),
    ("UnauthorizedOperation: You are not authorized", InsufficientPermissions("DescribeInstances")),
    ("AuthFailure: AWS was not able to validate the provided access credentials",
     InvalidCredentials("AuthFailure: AWS was not able to validate the provided access credentials")),
    ("InternalError: boom", UnknownError("InternalError: boom")),
])
def test_classify_message_markers(message, expected):
    assert classify_message(message, "DescribeInstances") == expected


def test_dry_run_marker_wins_over_others():
    msg = "DryRunOperation after UnauthorizedOperation and AuthFailure"
    assert isinstance(classify_message(msg, "op"), NoError)


def test_client_error_uses_code_and_operation():
    err = classify_exception(client_error("UnauthorizedOperation", "denied", "DescribeSpotPriceHistory"))
    assert err == InsufficientPermissions("DescribeSpotPriceHistory")
    assert err.kind == "InsufficientPermissions"


def test_explicit_operation_overrides_client_error_operation():
    err = classify_exception(client_error("UnauthorizedOperation", "denied"), "Custom")
    assert err == InsufficientPermissions("Custom")


def test_client_error_dry_run_is_no_error():
    assert isinstance(classify_exception(client_error("DryRunOperation", "would succeed")), NoError)


def test_transport_errors_are_network_errors():
    assert isinstance(classify_exception(EndpointConnectionError(endpoint_url="https://ec2.example")), NetworkError)
    assert isinstance(classify_exception(ReadTimeoutError(endpoint_url="https://ec2.example")), NetworkError)


def test_credential_and_validation_errors():
    assert isinstance(classify_exception(NoCredentialsError()), InvalidCredentials)
    assert isinstance(classify_exception(ParamValidationError(report="bad MaxResults")), InvalidCredentials)


def test_region_errors():
    assert isinstance(classify_exception(NoRegionError()), BadRegion)


def test_unexpected_exception_is_unknown_and_taxonomy_passthrough():
    err = classify_exception(RuntimeError("weird"))
    assert err == UnknownError("weird")
    original = BadRegion("mars-1")
    assert classify_exception(original) is original


def test_str_and_equality():
    assert str(InsufficientPermissions("DescribeInstances")) == "InsufficientPermissions(DescribeInstances)"
    assert str(NoError()) == "NoError(No error)"
    assert NetworkError("a") != UnknownError("a")
    assert len({NetworkError("a"), NetworkError("a")}) == 1
