"""OpenRouter chat-completions client built from modular components."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from healthy_meal.adapters.openrouter.client_validation import (
    validate_init_params,
    validate_messages,
)
from healthy_meal.adapters.openrouter.error_handler import (
    ErrorHandler,
    classify_transport_error,
    handle_api_error,
    parse_retry_after,
)
from healthy_meal.adapters.openrouter.payload_logger import PayloadLogger
from healthy_meal.adapters.openrouter.request_builder import RequestBuilder
from healthy_meal.adapters.openrouter.response_processor import ResponseProcessor
from healthy_meal.api.exceptions import ClassifiedError, internal_error, validation_error
from healthy_meal.config.llm import DEFAULT_OPENROUTER_BASE_URL
from healthy_meal.models.llm.llm_models import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    ModelListResponse,
)

if TYPE_CHECKING:
    from healthy_meal.config.llm import OpenRouterConfig
    from healthy_meal.config.settings import RuntimeConfig

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"
MODELS_PATH = "/models"


def _coerce_request(request: ChatCompletionRequest | Mapping[str, Any]) -> ChatCompletionRequest:
    if isinstance(request, ChatCompletionRequest):
        return request
    try:
        return ChatCompletionRequest.model_validate(dict(request))
    except ValidationError as exc:
        errors = [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in exc.errors(include_url=False)
        ]
        raise validation_error("Invalid chat completion request", {"errors": errors}) from exc


class OpenRouterClient:
    """Async OpenRouter client with classified errors, retries and structured output.

    One instance holds one pooled ``httpx.AsyncClient``; close it with
    :meth:`aclose` or use the client as an async context manager.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_OPENROUTER_BASE_URL,
        http_referer: str | None = None,
        x_title: str | None = "AI Healthy Meal",
        timeout_sec: float = 30,
        max_retries: int = 1,
        backoff_base: float = 0.5,
        debug_payloads: bool = False,
        log_truncate_length: int = 1000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        validate_init_params(
            api_key=api_key,
            base_url=base_url,
            http_referer=http_referer,
            x_title=x_title,
            timeout_sec=timeout_sec,
            max_retries=max_retries,
            backoff_base=backoff_base,
        )

        self._base_url = base_url.rstrip("/")
        self._timeout = float(timeout_sec)

        self.request_builder = RequestBuilder(
            api_key=api_key,
            http_referer=http_referer,
            x_title=x_title,
        )
        self.response_processor = ResponseProcessor(log_truncate_length=log_truncate_length)
        self.error_handler = ErrorHandler(max_retries=max_retries, backoff_base=backoff_base)
        self.payload_logger = PayloadLogger(
            debug_payloads=debug_payloads,
            log_truncate_length=log_truncate_length,
        )

        limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            limits=limits,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: OpenRouterConfig,
        runtime: RuntimeConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OpenRouterClient:
        return cls(
            config.api_key,
            base_url=config.base_url,
            http_referer=config.http_referer,
            x_title=config.x_title,
            timeout_sec=config.timeout_sec,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            debug_payloads=runtime.debug_payloads if runtime else False,
            log_truncate_length=runtime.log_truncate_length if runtime else 1000,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> OpenRouterClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # Components exposed as operations of the client.

    def validate_messages(
        self, messages: Sequence[ChatMessage | Mapping[str, Any]]
    ) -> list[ChatMessage]:
        return validate_messages(messages)

    def build_request_payload(self, request: ChatCompletionRequest) -> dict[str, Any]:
        return self.request_builder.build_request_payload(request)

    @staticmethod
    def handle_api_error(status_code: int, body: Any = None) -> ClassifiedError:
        return handle_api_error(status_code, body)

    def parse_response(
        self, response: httpx.Response, original_request: ChatCompletionRequest
    ) -> ChatCompletionResponse:
        return self.response_processor.parse_response(response, original_request)

    async def send_request(
        self,
        payload: dict[str, Any] | None,
        *,
        method: str = "POST",
        path: str = CHAT_COMPLETIONS_PATH,
    ) -> httpx.Response:
        """Send one logical request, retrying transient failures.

        Returns the first 2xx response. Non-retryable failures are raised
        immediately; retryable ones (429, 5xx, timeout, network) are retried
        until the attempt budget runs out, then the last error is raised.
        Cancellation of the calling task is never converted into an error.
        """
        headers = self.request_builder.build_headers()
        model = payload.get("model") if payload else None
        if payload is not None:
            self.payload_logger.log_request_payload(
                self.request_builder.get_redacted_headers(headers), payload
            )

        last_error: ClassifiedError | None = None
        for attempt in range(self.error_handler.max_attempts):
            self.error_handler.log_attempt(attempt, model, path)
            retry_after: float | None = None
            status: int | None = None
            started = time.perf_counter()
            try:
                response = await asyncio.wait_for(
                    self._http.request(method, path, headers=headers, json=payload),
                    timeout=self._timeout,
                )
            except (httpx.TransportError, TimeoutError) as exc:
                error = classify_transport_error(exc, self._timeout)
            else:
                status = response.status_code
                if self.payload_logger.enabled:
                    self.payload_logger.log_response_payload(status, response.text)
                if response.is_success:
                    latency_ms = int((time.perf_counter() - started) * 1000)
                    self.error_handler.log_success(attempt, model, status, latency_ms)
                    return response
                error = self.response_processor.classify_error_response(response)
                if status == 429:
                    retry_after = parse_retry_after(response.headers)

            last_error = error
            if not self.error_handler.should_retry(error, attempt):
                if error.retryable:
                    self.error_handler.log_exhausted(model, error)
                else:
                    self.error_handler.log_error(attempt, model, error, status)
                raise error

            delay = self.error_handler.retry_delay(attempt, retry_after)
            self.error_handler.log_retry(attempt, model, error, delay)
            await asyncio.sleep(delay)

        raise last_error or internal_error("Request failed after all retries")

    async def chat_completion(
        self, request: ChatCompletionRequest | Mapping[str, Any]
    ) -> ChatCompletionResponse:
        """Validate, send and parse one chat completion.

        Every failure surfaces as a :class:`ClassifiedError`; anything
        unexpected is logged and reported as a generic internal error.
        """
        chat_request = _coerce_request(request)
        try:
            self.validate_messages(chat_request.messages)
            payload = self.build_request_payload(chat_request)
            response = await self.send_request(payload)
            return self.parse_response(response, chat_request)
        except ClassifiedError:
            raise
        except Exception as exc:
            logger.exception(
                "openrouter_unexpected_error", extra={"model": chat_request.model}
            )
            raise internal_error("Failed to complete chat request") from exc

    async def chat_completion_with_schema(
        self,
        request: ChatCompletionRequest | Mapping[str, Any],
        schema: dict[str, Any],
        schema_name: str,
        strict: bool = True,
    ) -> ChatCompletionResponse:
        """Like :meth:`chat_completion`, but constrain the output to ``schema``.

        The choice content of the result is the decoded JSON value.
        """
        chat_request = _coerce_request(request)
        response_format = self.request_builder.build_response_format(schema, schema_name, strict)
        return await self.chat_completion(
            chat_request.model_copy(update={"response_format": response_format})
        )

    async def list_models(self) -> ModelListResponse:
        """Fetch the upstream model catalog."""
        try:
            response = await self.send_request(None, method="GET", path=MODELS_PATH)
            return self.response_processor.parse_model_list(response)
        except ClassifiedError:
            raise
        except Exception as exc:
            logger.exception("openrouter_list_models_error")
            raise internal_error("Failed to fetch model list") from exc
