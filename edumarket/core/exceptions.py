"""Ledger error kinds.

Every service raises one of these; the HTTP layer maps ``code`` to a status
code in one place. Idempotent repeats (already enrolled, already completed,
already terminal) are not errors and never raise.
"""

from fastapi import status


class LedgerError(Exception):
    """Base ledger error."""

    code = "ledger_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class NotFoundError(LedgerError):
    """Referenced course, user or purchase does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class NotEnrolledError(LedgerError):
    """Operation requires an enrollment the user does not hold."""

    code = "not_enrolled"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "User is not enrolled in this course"):
        super().__init__(message)


class ForbiddenError(LedgerError):
    """Caller's role or ownership does not allow the operation."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidArgumentError(LedgerError):
    """Rating out of range, malformed duration, negative price or discount."""

    code = "invalid_argument"
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT


class ConflictError(LedgerError):
    """A conditional write could not be resolved by the storage layer."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class UpstreamUnavailableError(LedgerError):
    """Identity provider or payment gateway is unreachable."""

    code = "upstream_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Upstream service unavailable, try again"):
        super().__init__(message)


class WebhookSignatureError(LedgerError):
    """Webhook payload failed signature verification."""

    code = "invalid_signature"
    status_code = status.HTTP_400_BAD_REQUEST
