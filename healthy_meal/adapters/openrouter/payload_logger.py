"""Payload logging for OpenRouter API requests and responses."""

from __future__ import annotations

import logging
from typing import Any

from healthy_meal.core.logging_utils import truncate_log_content


class PayloadLogger:
    """Logs compact request/response previews when payload debugging is enabled."""

    def __init__(self, debug_payloads: bool = False, log_truncate_length: int = 1000) -> None:
        self._debug_payloads = debug_payloads
        self._log_truncate_length = log_truncate_length
        self._logger = logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return self._debug_payloads

    def log_request_payload(self, headers: dict[str, str], body: dict[str, Any]) -> None:
        """Log a request preview. ``headers`` must already be redacted."""
        if not self._debug_payloads:
            return

        messages = body.get("messages") or []
        sample_messages = [
            {
                "role": msg.get("role", "?"),
                "len": len(str(msg.get("content", ""))),
                "preview": truncate_log_content(str(msg.get("content", "")), 120),
            }
            for msg in messages[:2]
        ]
        response_format = body.get("response_format") or {}

        self._logger.debug(
            "openrouter_request_payload",
            extra={
                "headers": headers,
                "body_preview": {
                    "model": body.get("model"),
                    "temperature": body.get("temperature"),
                    "max_tokens": body.get("max_tokens"),
                    "response_format_type": response_format.get("type"),
                    "messages_total": len(messages),
                    "total_content_length": sum(
                        len(str(msg.get("content", ""))) for msg in messages
                    ),
                    "sample_messages": sample_messages,
                },
            },
        )

    def log_response_payload(self, status: int, text: str) -> None:
        if not self._debug_payloads:
            return
        self._logger.debug(
            "openrouter_response_payload",
            extra={
                "status": status,
                "preview": truncate_log_content(text, self._log_truncate_length),
            },
        )
