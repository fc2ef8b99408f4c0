"""Response processor for OpenRouter API responses."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from healthy_meal.adapters.openrouter.error_handler import handle_api_error
from healthy_meal.api.exceptions import ClassifiedError, FailureKind, internal_error
from healthy_meal.core.logging_utils import truncate_log_content
from healthy_meal.models.llm.llm_models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    Choice,
    ChoiceMessage,
    ModelListResponse,
    ResponseFormatSpec,
    Usage,
)

logger = logging.getLogger(__name__)

_JSON_TYPES: dict[str, type | tuple[type, ...]] = {
    "object": dict,
    "array": list,
    "string": str,
    "number": (int, float),
    "integer": int,
    "boolean": bool,
}


def _malformed(message: str) -> ClassifiedError:
    return internal_error(message, kind=FailureKind.MALFORMED_RESPONSE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if any."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    if not stripped.endswith("```") or len(stripped) < 6:
        return stripped
    # Drop the opening fence and its language tag, then the closing fence.
    opening, _, rest = stripped.partition("\n")
    body = rest if rest else opening[3:]
    return body[: body.rfind("```")].strip()


def _matches_type(value: Any, declared: Any) -> bool:
    if not isinstance(declared, str) or declared not in _JSON_TYPES:
        return True
    if declared in ("number", "integer") and isinstance(value, bool):
        return False
    return isinstance(value, _JSON_TYPES[declared])


def schema_violations(value: Any, schema: dict[str, Any]) -> list[str]:
    """Minimal structural check: top-level type and the required properties."""
    if not _matches_type(value, schema.get("type")):
        return [f"expected top-level {schema.get('type')}"]
    if not isinstance(value, dict):
        return []

    problems: list[str] = []
    properties = schema.get("properties") or {}
    for name in schema.get("required") or []:
        if name not in value:
            problems.append(f"missing required field '{name}'")
            continue
        field_schema = properties.get(name) if isinstance(properties, dict) else None
        declared = field_schema.get("type") if isinstance(field_schema, dict) else None
        if not _matches_type(value[name], declared):
            problems.append(f"field '{name}' is not of type {declared}")
    return problems


class ResponseProcessor:
    """Validates the shape of upstream responses and decodes structured content."""

    def __init__(self, log_truncate_length: int = 1000) -> None:
        self._log_truncate_length = log_truncate_length

    def decode_body(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "openrouter_invalid_json_body",
                extra={
                    "status": response.status_code,
                    "preview": truncate_log_content(response.text, self._log_truncate_length),
                },
            )
            raise _malformed("Invalid JSON response from OpenRouter API") from exc

    def classify_error_response(self, response: httpx.Response) -> ClassifiedError:
        """Build the classified error for a non-2xx response."""
        try:
            body: Any = response.json()
        except ValueError:
            body = {"message": response.text or response.reason_phrase}
        logger.warning(
            "openrouter_error_response",
            extra={
                "status": response.status_code,
                "preview": truncate_log_content(response.text, self._log_truncate_length),
            },
        )
        return handle_api_error(response.status_code, body)

    def raise_for_status(self, response: httpx.Response) -> None:
        if not response.is_success:
            raise self.classify_error_response(response)

    def parse_response(
        self, response: httpx.Response, original_request: ChatCompletionRequest
    ) -> ChatCompletionResponse:
        """Validate a chat-completions response and decode structured content.

        When the original request carried a ``response_format``, each choice's
        content is decoded from JSON and checked against the declared schema.
        Otherwise content is returned as raw text.
        """
        self.raise_for_status(response)
        data = self.decode_body(response)

        if not isinstance(data, dict) or not data.get("id"):
            raise _malformed("Invalid response structure from OpenRouter API")

        raw_choices = data.get("choices")
        if not isinstance(raw_choices, list) or not raw_choices:
            raise _malformed("Response contains no choices")

        response_format = original_request.response_format
        choices = [
            self._parse_choice(raw, position, response_format)
            for position, raw in enumerate(raw_choices)
        ]

        created = data.get("created")
        return ChatCompletionResponse(
            id=str(data["id"]),
            model=str(data.get("model") or original_request.model),
            created=created if isinstance(created, int) else int(time.time()),
            choices=choices,
            usage=self._parse_usage(data.get("usage")),
        )

    def _parse_choice(
        self, raw: Any, position: int, response_format: ResponseFormatSpec | None
    ) -> Choice:
        if not isinstance(raw, dict):
            raise _malformed(f"Invalid choice structure at index {position}")
        message = raw.get("message")
        if not isinstance(message, dict) or "content" not in message:
            raise _malformed(f"Invalid message structure in choice at index {position}")

        content = message.get("content")
        if response_format is not None:
            content = self.decode_structured_content(content, response_format)
        elif content is None:
            content = ""

        index = raw.get("index")
        finish_reason = raw.get("finish_reason")
        return Choice(
            index=index if isinstance(index, int) else position,
            message=ChoiceMessage(role=str(message.get("role") or "assistant"), content=content),
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        )

    def decode_structured_content(self, content: Any, response_format: ResponseFormatSpec) -> Any:
        """Decode schema-constrained content, failing with INTERNAL_ERROR if it does not fit."""
        schema_name = response_format.json_schema.name
        if isinstance(content, dict | list):
            decoded = content
        else:
            if not isinstance(content, str) or not content.strip():
                raise _malformed("Invalid structured output: response content is empty")
            try:
                decoded = json.loads(strip_code_fences(content))
            except json.JSONDecodeError as exc:
                logger.error(
                    "structured_output_parse_error",
                    extra={
                        "schema_name": schema_name,
                        "preview": truncate_log_content(content, self._log_truncate_length),
                    },
                )
                raise _malformed(
                    "Invalid structured output: response content is not valid JSON"
                ) from exc

        problems = schema_violations(decoded, response_format.json_schema.schema_)
        if problems:
            logger.error(
                "structured_output_schema_mismatch",
                extra={"schema_name": schema_name, "problems": problems},
            )
            raise internal_error(
                f"Invalid structured output: {'; '.join(problems)}",
                kind=FailureKind.MALFORMED_RESPONSE,
                details={"schema": schema_name, "problems": problems},
            )
        return decoded

    @staticmethod
    def _parse_usage(raw: Any) -> Usage | None:
        if not isinstance(raw, dict):
            return None
        values = {}
        for key in ("prompt_tokens", "completion_tokens", "total_tokens"):
            value = raw.get(key)
            values[key] = value if isinstance(value, int) else 0
        return Usage(**values)

    def parse_model_list(self, response: httpx.Response) -> ModelListResponse:
        self.raise_for_status(response)
        data = self.decode_body(response)
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise _malformed("Invalid model list response structure")
        entries = [entry for entry in data["data"] if isinstance(entry, dict) and entry.get("id")]
        return ModelListResponse.model_validate({"data": entries})
