"""Error classification and retry policy for OpenRouter API calls."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from healthy_meal.api.exceptions import (
    ClassifiedError,
    FailureKind,
    internal_error,
    unauthorized_error,
    validation_error,
)
from healthy_meal.core.backoff import backoff_delay

logger = logging.getLogger(__name__)

# Upper bound for honouring an upstream Retry-After header, in seconds.
MAX_RETRY_AFTER_SEC = 30.0


def extract_error_details(body: Any) -> tuple[str | None, dict[str, Any] | None]:
    """Pull a message and machine-readable details out of an upstream error body.

    Accepts ``{"error": {"message", "code", "type"}}``, ``{"message": ...}`` and
    ``{"error": "<text>"}``.
    """
    if not isinstance(body, dict):
        return None, None

    message: str | None = None
    details: dict[str, Any] | None = None

    err = body.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        if isinstance(msg, str) and msg:
            message = msg
        if "code" in err:
            details = {"apiErrorCode": err["code"]}
        if "type" in err:
            details = {**(details or {}), "errorType": err["type"]}
    elif isinstance(err, str) and err:
        message = err
    else:
        msg = body.get("message")
        if isinstance(msg, str) and msg:
            message = msg

    return message, details


def handle_api_error(status_code: int, body: Any = None) -> ClassifiedError:
    """Map a failed HTTP response to a classified error.

    | Status | Code             | Retried |
    |--------|------------------|---------|
    | 401    | UNAUTHORIZED     | no      |
    | 400    | VALIDATION_ERROR | no      |
    | 402    | INTERNAL_ERROR   | no      |
    | 429    | INTERNAL_ERROR   | yes     |
    | >= 500 | INTERNAL_ERROR   | yes     |
    | other  | INTERNAL_ERROR   | no      |
    """
    message, details = extract_error_details(body)

    if status_code == 401:
        return unauthorized_error("Invalid OpenRouter API key")
    if status_code == 400:
        return validation_error(
            message or "Invalid or missing request parameters",
            details,
            kind=FailureKind.BAD_REQUEST,
        )
    if status_code == 402:
        return internal_error(
            "OpenRouter account has insufficient funds", kind=FailureKind.PAYMENT_REQUIRED
        )
    if status_code == 429:
        return internal_error(
            "Rate limit exceeded. Please try again later.", kind=FailureKind.RATE_LIMITED
        )
    if status_code >= 500:
        return internal_error("OpenRouter API server error", kind=FailureKind.SERVER_ERROR)
    return internal_error(
        message or f"OpenRouter API error (HTTP {status_code})",
        kind=FailureKind.UPSTREAM_ERROR,
        details=details,
    )


def classify_transport_error(exc: Exception, timeout_sec: float) -> ClassifiedError:
    """Classify an exception raised before any response arrived.

    ``TimeoutError`` comes from the per-attempt deadline, ``httpx.TimeoutException``
    from the connection-level timeouts. Both are reported the same way.
    """
    if isinstance(exc, httpx.TimeoutException | TimeoutError):
        return internal_error(
            f"Request timeout after {timeout_sec:g} seconds", kind=FailureKind.TIMEOUT
        )
    return internal_error(f"Network error: {exc}", kind=FailureKind.NETWORK)


def parse_retry_after(headers: httpx.Headers) -> float | None:
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        logger.warning("invalid_retry_after_header", extra={"retry_after": raw})
        return None
    return max(0.0, min(seconds, MAX_RETRY_AFTER_SEC))


class ErrorHandler:
    """Owns the retry budget and the delay between attempts."""

    def __init__(self, max_retries: int = 1, backoff_base: float = 0.5) -> None:
        self._max_retries = max_retries
        self._backoff_base = backoff_base

    @property
    def max_attempts(self) -> int:
        return self._max_retries + 1

    def should_retry(self, error: ClassifiedError, attempt: int) -> bool:
        """Retry only transient failures, and only while attempts remain."""
        return error.retryable and attempt + 1 < self.max_attempts

    def retry_delay(self, attempt: int, retry_after: float | None = None) -> float:
        if retry_after is not None:
            return retry_after
        return backoff_delay(attempt, self._backoff_base)

    def log_attempt(self, attempt: int, model: str | None, endpoint: str) -> None:
        logger.debug(
            "openrouter_attempt",
            extra={
                "attempt": attempt + 1,
                "max_attempts": self.max_attempts,
                "model": model,
                "endpoint": endpoint,
            },
        )

    def log_retry(
        self, attempt: int, model: str | None, error: ClassifiedError, delay: float
    ) -> None:
        logger.warning(
            "openrouter_retry",
            extra={
                "attempt": attempt + 1,
                "model": model,
                "failure_kind": error.kind.value,
                "error": error.message,
                "delay_sec": round(delay, 3),
            },
        )

    def log_error(
        self, attempt: int, model: str | None, error: ClassifiedError, status: int | None = None
    ) -> None:
        logger.error(
            "openrouter_error",
            extra={
                "attempt": attempt + 1,
                "model": model,
                "status": status,
                "code": error.code.value,
                "failure_kind": error.kind.value,
                "error": error.message,
                "retryable": error.retryable,
            },
        )

    def log_success(self, attempt: int, model: str | None, status: int, latency_ms: int) -> None:
        logger.info(
            "openrouter_success",
            extra={
                "attempt": attempt + 1,
                "model": model,
                "status": status,
                "latency_ms": latency_ms,
            },
        )

    def log_exhausted(self, model: str | None, error: ClassifiedError) -> None:
        logger.error(
            "openrouter_exhausted",
            extra={
                "model": model,
                "attempts": self.max_attempts,
                "failure_kind": error.kind.value,
                "error": error.message,
            },
        )
