"""Request builder for OpenRouter API calls."""

from __future__ import annotations

from typing import Any

from healthy_meal.adapters.openrouter.client_validation import validate_messages
from healthy_meal.api.exceptions import validation_error
from healthy_meal.models.llm.llm_models import (
    ChatCompletionRequest,
    JsonSchemaSpec,
    ResponseFormatSpec,
)

DEFAULT_TEMPERATURE = 1.0

# Sampling parameters copied to the payload only when the caller set them.
_OPTIONAL_PARAMS = ("max_tokens", "top_p", "frequency_penalty", "presence_penalty")


class RequestBuilder:
    """Builds headers and wire payloads for the chat-completions endpoint."""

    def __init__(
        self,
        api_key: str,
        http_referer: str | None = None,
        x_title: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._http_referer = http_referer
        self._x_title = x_title

    def build_headers(self) -> dict[str, str]:
        """Build HTTP headers for the request."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self._http_referer:
            headers["HTTP-Referer"] = self._http_referer
        if self._x_title:
            headers["X-Title"] = self._x_title
        return headers

    def get_redacted_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Get headers with sensitive information redacted."""
        redacted_headers = dict(headers)
        if "Authorization" in redacted_headers:
            redacted_headers["Authorization"] = "REDACTED"
        return redacted_headers

    def build_request_payload(self, request: ChatCompletionRequest) -> dict[str, Any]:
        """Turn a validated request into the JSON body sent upstream.

        ``temperature`` is always present; the other sampling parameters and
        ``response_format`` appear only when set on the request.
        """
        if not request.model or not request.model.strip():
            raise validation_error("Model name is required")

        messages = validate_messages(request.messages)

        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [message.model_dump() for message in messages],
            "temperature": (
                request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE
            ),
        }

        for name in _OPTIONAL_PARAMS:
            value = getattr(request, name)
            if value is not None:
                payload[name] = value

        if request.stop:
            payload["stop"] = list(request.stop)

        if request.response_format is not None:
            payload["response_format"] = request.response_format.to_payload()

        return payload

    @staticmethod
    def build_response_format(
        schema: dict[str, Any], schema_name: str, strict: bool = True
    ) -> ResponseFormatSpec:
        """Wrap a raw JSON Schema into the ``json_schema`` response format."""
        if not isinstance(schema, dict) or not schema:
            raise validation_error("Response schema must be a non-empty JSON object")
        if not schema_name or not schema_name.strip():
            raise validation_error("Response schema name is required")
        return ResponseFormatSpec(
            json_schema=JsonSchemaSpec(name=schema_name, strict=strict, schema=schema)
        )
