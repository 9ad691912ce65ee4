"""Service error taxonomy.

Every failure a caller can observe is one of these. Each error carries the
HTTP status it maps to, whether the caller may retry it verbatim, and the
kind of user-facing action the client app should offer:

- ``refresh_and_retry``: state changed since the view was rendered
- ``fix_input``: the request itself must change
- ``retry_later``: transient connectivity problem
"""

from typing import Any, Optional

REFRESH_AND_RETRY = "refresh_and_retry"
FIX_INPUT = "fix_input"
RETRY_LATER = "retry_later"


class ServiceError(Exception):
    """Base class for all service errors."""

    code = "service_error"
    http_status = 500
    retryable = False
    user_action = RETRY_LATER

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "user_action": self.user_action,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ServiceError):
    """Malformed input, rejected before any state change."""

    code = "validation_error"
    http_status = 422
    user_action = FIX_INPUT


class Unauthenticated(ServiceError):
    """Request carries no usable principal identity."""

    code = "unauthenticated"
    http_status = 401
    user_action = FIX_INPUT


class Forbidden(ServiceError):
    """Actor lacks ownership or authorization."""

    code = "forbidden"
    http_status = 403
    user_action = FIX_INPUT


class NotFound(ServiceError):
    """Referenced entity does not exist."""

    code = "not_found"
    http_status = 404
    user_action = FIX_INPUT


class Conflict(ServiceError):
    """Current state precludes the operation."""

    code = "conflict"
    http_status = 409
    user_action = REFRESH_AND_RETRY


class AlreadyFinalized(Conflict):
    """Mutation attempted on a reservation in a terminal state.

    Idempotent rejection: the call had no side effect.
    """

    code = "already_finalized"


class InvalidTransition(Conflict):
    """Requested status change is not an edge of the reservation state machine."""

    code = "invalid_transition"
    user_action = FIX_INPUT


class InsufficientQuantity(ServiceError):
    """Availability check failed at reservation time.

    Only retry after re-reading current availability.
    """

    code = "insufficient_quantity"
    http_status = 409
    user_action = REFRESH_AND_RETRY


class RateLimited(ServiceError):
    """Caller exceeded the request budget for an action."""

    code = "rate_limited"
    http_status = 429
    user_action = RETRY_LATER

    def __init__(self, retry_after: int):
        super().__init__(
            f"Too many requests. Please wait {retry_after} seconds before trying again.",
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class Unavailable(ServiceError):
    """Storage or network failure; safe to retry with backoff."""

    code = "unavailable"
    http_status = 503
    retryable = True
    user_action = RETRY_LATER
