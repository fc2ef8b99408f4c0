from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ._validators import (
    _ensure_api_key,
    _parse_float_in_range,
    _parse_int_in_range,
    validate_model_name,
)

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_key: str = Field(
        ..., validation_alias=AliasChoices("OPENROUTER_API_KEY", "OPEN_ROUTER_API_KEY")
    )
    base_url: str = Field(
        default=DEFAULT_OPENROUTER_BASE_URL, validation_alias="OPENROUTER_BASE_URL"
    )
    http_referer: str | None = Field(default=None, validation_alias="OPENROUTER_HTTP_REFERER")
    x_title: str | None = Field(default="AI Healthy Meal", validation_alias="OPENROUTER_X_TITLE")
    timeout_sec: float = Field(default=30.0, validation_alias="OPENROUTER_TIMEOUT_SEC")
    max_retries: int = Field(default=1, validation_alias="OPENROUTER_MAX_RETRIES")
    backoff_base: float = Field(default=0.5, validation_alias="OPENROUTER_BACKOFF_BASE")

    @field_validator("api_key", mode="before")
    @classmethod
    def _validate_api_key(cls, value: Any) -> str:
        return _ensure_api_key(str(value or ""), name="OpenRouter")

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: Any) -> str:
        if value in (None, ""):
            return DEFAULT_OPENROUTER_BASE_URL
        url = str(value).strip().rstrip("/")
        if not url.startswith(("https://", "http://")):
            msg = "OpenRouter base URL must start with http:// or https://"
            raise ValueError(msg)
        return url

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        timeout = _parse_float_in_range(
            value, default=30.0, low=0.0, high=300.0, label="OpenRouter timeout"
        )
        if timeout <= 0:
            msg = "OpenRouter timeout must be positive"
            raise ValueError(msg)
        return timeout

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_max_retries(cls, value: Any) -> int:
        return _parse_int_in_range(value, default=1, low=0, high=10, label="Max retries")

    @field_validator("backoff_base", mode="before")
    @classmethod
    def _validate_backoff_base(cls, value: Any) -> float:
        return _parse_float_in_range(
            value, default=0.5, low=0.0, high=30.0, label="Backoff base"
        )


class RecipeGenerationConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    model: str = Field(default="openai/gpt-4o-2024-08-06", validation_alias="RECIPE_MODEL")
    temperature: float = Field(default=0.8, validation_alias="RECIPE_TEMPERATURE")
    max_tokens: int = Field(default=2000, validation_alias="RECIPE_MAX_TOKENS")

    @field_validator("model", mode="before")
    @classmethod
    def _validate_model(cls, value: Any) -> str:
        if value in (None, ""):
            return "openai/gpt-4o-2024-08-06"
        return validate_model_name(str(value).strip())

    @field_validator("temperature", mode="before")
    @classmethod
    def _validate_temperature(cls, value: Any) -> float:
        return _parse_float_in_range(value, default=0.8, low=0.0, high=2.0, label="Temperature")

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _validate_max_tokens(cls, value: Any) -> int:
        return _parse_int_in_range(value, default=2000, low=1, high=100000, label="Max tokens")
