"""Error taxonomy shared by every entry point.

Each exception maps to exactly one ErrorCode and HTTP status. Callers switch
on ``code``; ``message`` is for humans only.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Closed set of error codes returned in the response envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    IDEMPOTENT_REPLAY = "IDEMPOTENT_REPLAY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.PRECONDITION_FAILED: 412,
    ErrorCode.IDEMPOTENT_REPLAY: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}


class QRBatchError(Exception):
    """Base class for errors surfaced to API callers."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]


class ValidationError(QRBatchError):
    """Malformed or missing input. Resending unchanged will fail again."""

    code = ErrorCode.VALIDATION_ERROR


class UnauthorizedError(QRBatchError):
    """No usable tenant scope on the request."""

    code = ErrorCode.UNAUTHORIZED


class ForbiddenError(QRBatchError):
    """Tenant scope does not cover the referenced record."""

    code = ErrorCode.FORBIDDEN


class NotFoundError(QRBatchError):
    code = ErrorCode.NOT_FOUND


class ConflictError(QRBatchError):
    code = ErrorCode.CONFLICT


class PreconditionFailedError(QRBatchError):
    """Packaging configuration exists but holds unusable values."""

    code = ErrorCode.PRECONDITION_FAILED


class IdempotentReplayError(QRBatchError):
    code = ErrorCode.IDEMPOTENT_REPLAY


class InternalError(QRBatchError):
    code = ErrorCode.INTERNAL_ERROR


class IdentifierCollisionError(InternalError):
    """A generated identifier set contains a duplicate."""


class TenantScopeError(ValidationError):
    """The tenant scope could not be applied to the database session."""
