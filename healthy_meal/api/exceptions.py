"""Error codes and the classified error raised by the recipe generation core.

Every failure that crosses a module boundary is a ``ClassifiedError``: a closed
``ErrorCode`` for the caller, the HTTP status to answer with, and a
``FailureKind`` that decides whether the transport may retry.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes shared with the HTTP handlers."""

    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"


class FailureKind(str, Enum):
    """Why a call failed. Drives the retry decision, not the caller-visible code."""

    INVALID_INPUT = "invalid_input"
    AUTHENTICATION = "authentication"
    ACCESS_DENIED = "access_denied"
    MISSING_RESOURCE = "missing_resource"
    BAD_REQUEST = "bad_request"
    PAYMENT_REQUIRED = "payment_required"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NETWORK = "network"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_RESPONSE = "malformed_response"
    INTERNAL = "internal"


_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.FORBIDDEN: 403,
}

# Transient failures: worth another attempt against the upstream.
RETRY_DECISIONS: dict[FailureKind, bool] = {
    FailureKind.INVALID_INPUT: False,
    FailureKind.AUTHENTICATION: False,
    FailureKind.ACCESS_DENIED: False,
    FailureKind.MISSING_RESOURCE: False,
    FailureKind.BAD_REQUEST: False,
    FailureKind.PAYMENT_REQUIRED: False,
    FailureKind.RATE_LIMITED: True,
    FailureKind.SERVER_ERROR: True,
    FailureKind.TIMEOUT: True,
    FailureKind.NETWORK: True,
    FailureKind.UPSTREAM_ERROR: False,
    FailureKind.MALFORMED_RESPONSE: False,
    FailureKind.INTERNAL: False,
}


class ConfigurationError(ValueError):
    """Raised when a client is constructed with unusable settings."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ClassifiedError(Exception):
    """An error tagged with a stable code, an HTTP status and a failure kind."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        kind: FailureKind,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.kind = kind
        self.details = details
        self.status_code = status_code if status_code is not None else _STATUS_CODES[code]

    @property
    def retryable(self) -> bool:
        return RETRY_DECISIONS[self.kind]

    def to_response_body(self) -> dict[str, Any]:
        """Build the ``{"error": {...}}`` envelope returned to HTTP clients."""
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(code={self.code.value!r}, message={self.message!r}, "
            f"status_code={self.status_code}, kind={self.kind.value!r})"
        )


def unauthorized_error(message: str = "Authentication required") -> ClassifiedError:
    return ClassifiedError(ErrorCode.UNAUTHORIZED, message, kind=FailureKind.AUTHENTICATION)


def validation_error(
    message: str = "Invalid request parameters",
    details: dict[str, Any] | None = None,
    *,
    kind: FailureKind = FailureKind.INVALID_INPUT,
) -> ClassifiedError:
    return ClassifiedError(ErrorCode.VALIDATION_ERROR, message, kind=kind, details=details)


def internal_error(
    message: str = "An internal server error occurred",
    *,
    kind: FailureKind = FailureKind.INTERNAL,
    details: dict[str, Any] | None = None,
) -> ClassifiedError:
    return ClassifiedError(ErrorCode.INTERNAL_ERROR, message, kind=kind, details=details)


def not_found_error(message: str = "Resource not found") -> ClassifiedError:
    return ClassifiedError(ErrorCode.NOT_FOUND, message, kind=FailureKind.MISSING_RESOURCE)


def forbidden_error(message: str = "Access denied") -> ClassifiedError:
    return ClassifiedError(ErrorCode.FORBIDDEN, message, kind=FailureKind.ACCESS_DENIED)
