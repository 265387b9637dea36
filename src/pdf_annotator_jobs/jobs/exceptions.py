"""Error taxonomy of the job lifecycle.

HTTP-facing errors derive from :class:`ApiError` and carry the status code
and envelope ``code`` they map to. Worker-side errors (:class:`DomainError`,
:class:`TransportError`) mark the job failed and are then re-raised so the
queue runtime applies its own redelivery policy. :class:`DecodeError` means
the message cannot be addressed to a job at all.
"""

from __future__ import annotations

from typing import ClassVar


__all__ = [
    "ApiError",
    "AuthError",
    "DecodeError",
    "DomainError",
    "ForbiddenError",
    "JobsError",
    "NotFoundError",
    "TransportError",
    "UnauthenticatedError",
    "ValidationError",
]


class JobsError(Exception):
    """Base exception for all job lifecycle errors.

    Attributes:
        message: Human-readable error description. This is the text stored
            in a failed job's ``error`` field, so it must never contain
            stack traces, filesystem paths or secrets.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Handler-layer errors (mapped to the HTTP error envelope)
# ---------------------------------------------------------------------------


class ApiError(JobsError):
    """An error answered to the HTTP caller.

    Attributes:
        status_code: HTTP status of the response.
        code: Machine-readable ``error.code`` of the response envelope.
    """

    status_code: ClassVar[int] = 500
    code: ClassVar[str] = "internal_error"


class AuthError(ApiError):
    """Base class for authentication and authorization failures."""


class UnauthenticatedError(AuthError):
    """Raised when the bearer token is missing, invalid or expired."""

    status_code = 401
    code = "unauthorized"


class ForbiddenError(AuthError):
    """Raised when the caller does not own the document or job."""

    status_code = 403
    code = "forbidden"


class NotFoundError(ApiError):
    """Raised when the requested document or job does not exist."""

    status_code = 404
    code = "not_found"


class ValidationError(ApiError):
    """Raised when task input (export format, OCR pages) is malformed."""

    status_code = 400
    code = "validation_error"


# ---------------------------------------------------------------------------
# Worker-layer errors
# ---------------------------------------------------------------------------


class DecodeError(JobsError):
    """Raised when a queue message is neither base64 JSON nor JSON.

    Attributes:
        raw_length: Length of the undecodable message, for logging.
    """

    def __init__(self, message: str, *, raw_length: int = 0) -> None:
        super().__init__(message)
        self.raw_length = raw_length


class DomainError(JobsError):
    """Raised when stored metadata cannot support the requested work."""


class TransportError(JobsError):
    """Raised when a storage or OCR call fails.

    Attributes:
        operation: Short name of the failed operation (e.g. ``download``).
    """

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
