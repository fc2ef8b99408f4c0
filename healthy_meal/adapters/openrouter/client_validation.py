from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from healthy_meal.api.exceptions import ConfigurationError, unauthorized_error, validation_error
from healthy_meal.models.llm.llm_models import VALID_ROLES, ChatMessage


def validate_init_params(
    *,
    api_key: str | None,
    base_url: str,
    http_referer: str | None,
    x_title: str | None,
    timeout_sec: float,
    max_retries: int,
    backoff_base: float,
) -> None:
    """Validate client construction parameters, failing fast on the first problem."""
    if not api_key or not isinstance(api_key, str) or not api_key.strip():
        raise unauthorized_error("OpenRouter API key is required")

    if not base_url or not isinstance(base_url, str):
        msg = "Base URL is required and must be a non-empty string"
        raise ConfigurationError(msg, context={"parameter": "base_url"})
    if not base_url.startswith(("https://", "http://")):
        msg = f"Base URL must start with http:// or https:// (got '{base_url}')"
        raise ConfigurationError(msg, context={"parameter": "base_url"})

    if http_referer and (not isinstance(http_referer, str) or len(http_referer) > 500):
        msg = "HTTP referer must be a string with max 500 characters"
        raise ConfigurationError(msg, context={"parameter": "http_referer"})
    if x_title and (not isinstance(x_title, str) or len(x_title) > 200):
        msg = "X-Title must be a string with max 200 characters"
        raise ConfigurationError(msg, context={"parameter": "x_title"})

    if not isinstance(timeout_sec, int | float) or timeout_sec <= 0:
        msg = f"Timeout must be a positive number (got {timeout_sec})"
        raise ConfigurationError(msg, context={"parameter": "timeout_sec", "value": timeout_sec})
    if timeout_sec > 300:
        msg = f"Timeout too large (max 300 seconds, got {timeout_sec})"
        raise ConfigurationError(msg, context={"parameter": "timeout_sec", "value": timeout_sec})

    if not isinstance(max_retries, int) or max_retries < 0 or max_retries > 10:
        msg = f"Max retries must be an integer between 0 and 10 (got {max_retries})"
        raise ConfigurationError(msg, context={"parameter": "max_retries", "value": max_retries})
    if not isinstance(backoff_base, int | float) or backoff_base < 0:
        msg = f"Backoff base must be a non-negative number (got {backoff_base})"
        raise ConfigurationError(
            msg, context={"parameter": "backoff_base", "value": backoff_base}
        )


def validate_messages(
    messages: Sequence[ChatMessage | Mapping[str, Any]] | None,
) -> list[ChatMessage]:
    """Check conversation structure before anything is sent upstream.

    Returns the messages as ``ChatMessage`` objects.

    Raises:
        ClassifiedError: ``VALIDATION_ERROR`` describing the first offending message.
    """
    if not messages:
        raise validation_error("Messages array cannot be empty")

    normalized: list[ChatMessage] = []
    for i, message in enumerate(messages):
        if isinstance(message, ChatMessage):
            role: Any = message.role
            content: Any = message.content
        elif isinstance(message, Mapping):
            role = message.get("role")
            content = message.get("content")
        else:
            raise validation_error(
                f"Message at index {i} must be an object with role and content",
                {"message_index": i, "message_type": type(message).__name__},
            )

        if not isinstance(role, str) or role not in VALID_ROLES:
            raise validation_error(
                f"Invalid message role at index {i}. Must be one of: {', '.join(VALID_ROLES)}",
                {"message_index": i, "invalid_role": role},
            )

        if not isinstance(content, str) or not content.strip():
            raise validation_error(
                f"Message at index {i} must have non-empty content string",
                {"message_index": i},
            )

        if role == "system" and i != 0:
            raise validation_error(
                "System message must be the first message in the array",
                {"message_index": i},
            )

        normalized.append(ChatMessage(role=role, content=content))

    if normalized[-1].role != "user":
        raise validation_error(
            "Last message must be from user role",
            {"last_role": normalized[-1].role},
        )

    return normalized
