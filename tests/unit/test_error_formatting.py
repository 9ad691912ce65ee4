"""Unit tests for the service error taxonomy and log redaction."""

import pytest

from kapkurtar.errors import (
    AlreadyFinalized,
    Conflict,
    Forbidden,
    InsufficientQuantity,
    InvalidTransition,
    NotFound,
    RateLimited,
    ServiceError,
    Unavailable,
    ValidationError,
)
from kapkurtar.logging import redact


@pytest.mark.parametrize(
    "error_cls,status,user_action",
    [
        (ValidationError, 422, "fix_input"),
        (Forbidden, 403, "fix_input"),
        (NotFound, 404, "fix_input"),
        (Conflict, 409, "refresh_and_retry"),
        (AlreadyFinalized, 409, "refresh_and_retry"),
        (InsufficientQuantity, 409, "refresh_and_retry"),
        (Unavailable, 503, "retry_later"),
    ],
)
def test_error_mapping(error_cls, status, user_action):
    error = error_cls("boom")

    assert error.http_status == status
    assert error.user_action == user_action


def test_only_unavailable_is_retryable():
    retryable = [
        cls
        for cls in (ValidationError, Forbidden, NotFound, Conflict, AlreadyFinalized,
                    InvalidTransition, InsufficientQuantity, Unavailable)
        if cls("x").retryable
    ]

    assert retryable == [Unavailable]


def test_already_finalized_is_a_conflict():
    assert isinstance(AlreadyFinalized("done"), Conflict)
    assert isinstance(InvalidTransition("no"), Conflict)


def test_to_dict_shape():
    error = Conflict("Offer has reservations", code="offer_has_reservations", details={"reservations": 2})

    assert error.to_dict() == {
        "code": "offer_has_reservations",
        "message": "Offer has reservations",
        "retryable": False,
        "user_action": "refresh_and_retry",
        "details": {"reservations": 2},
    }


def test_code_override_does_not_leak_to_class():
    Conflict("x", code="custom")

    assert Conflict("y").code == "conflict"


def test_rate_limited_carries_retry_after():
    error = RateLimited(42)

    assert isinstance(error, ServiceError)
    assert error.http_status == 429
    assert error.details == {"retry_after": 42}
    assert "42 seconds" in error.message


def test_redact_push_token():
    redacted = redact("sending to ExponentPushToken[abc123XYZ] now")

    assert "abc123XYZ" not in redacted
    assert "<PUSH_TOKEN_REDACTED>" in redacted


def test_redact_database_password():
    redacted = redact("postgresql+asyncpg://kapkurtar:s3cret@db:5432/kapkurtar")

    assert "s3cret" not in redacted
    assert redacted == "postgresql+asyncpg://kapkurtar:***@db:5432/kapkurtar"
