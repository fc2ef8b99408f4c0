from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._validators import _parse_int_in_range
from .llm import OpenRouterConfig, RecipeGenerationConfig

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_names(field: FieldInfo) -> list[str]:
    """Environment names a section field answers to, in lookup order."""
    alias = field.validation_alias
    if isinstance(alias, AliasChoices):
        names = [choice for choice in alias.choices if isinstance(choice, str)]
    elif isinstance(alias, str):
        names = [alias]
    else:
        names = []
    if field.alias:
        names.append(field.alias)
    return names


def _section_from_env(section: type[BaseModel], source: dict[str, Any]) -> dict[str, Any]:
    found: dict[str, Any] = {}
    for name, field in section.model_fields.items():
        for env_name in _env_names(field):
            if env_name in source:
                found[name] = source[env_name]
                break
    return found


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    debug_payloads: bool = Field(default=False, validation_alias="DEBUG_PAYLOADS")
    log_truncate_length: int = Field(default=1000, validation_alias="LOG_TRUNCATE_LENGTH")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in _LOG_LEVELS:
            msg = f"Log level must be one of {', '.join(_LOG_LEVELS)}, got {value!r}"
            raise ValueError(msg)
        return level

    @field_validator("log_truncate_length", mode="before")
    @classmethod
    def _validate_log_truncate_length(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, default=1000, low=20, high=100000, label="Log truncate length"
        )


@dataclass(frozen=True)
class AppConfig:
    openrouter: OpenRouterConfig
    recipes: RecipeGenerationConfig
    runtime: RuntimeConfig


class Settings(BaseSettings):
    """Environment-backed settings for the OpenRouter client and recipe generation.

    Each section is filled from the flat environment by the ``validation_alias``
    of its fields, so ``OPENROUTER_API_KEY`` lands in ``openrouter.api_key``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    openrouter: OpenRouterConfig
    recipes: RecipeGenerationConfig = Field(default_factory=RecipeGenerationConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="before")
    @classmethod
    def _sections_from_env(cls, data: Any) -> Any:
        # Explicit keyword sections win over values read from os.environ.
        if not isinstance(data, dict):
            return data

        source = {**os.environ, **data}
        sections = dict(data)
        for name, field in cls.model_fields.items():
            section = field.annotation
            if not (isinstance(section, type) and issubclass(section, BaseModel)):
                continue
            from_env = _section_from_env(section, source)
            if not from_env:
                continue
            given = sections.get(name)
            sections[name] = {**from_env, **given} if isinstance(given, dict) else from_env
        return sections

    def as_app_config(self) -> AppConfig:
        return AppConfig(openrouter=self.openrouter, recipes=self.recipes, runtime=self.runtime)


def load_config(**overrides: Any) -> AppConfig:
    """Load configuration from the environment and ``.env``.

    Keyword overrides are section dictionaries, e.g.
    ``load_config(openrouter={"api_key": "..."})``.

    Raises:
        RuntimeError: If any section fails validation.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc

    config = settings.as_app_config()
    logger.debug(
        "config_loaded",
        extra={
            "base_url": config.openrouter.base_url,
            "recipe_model": config.recipes.model,
            "max_retries": config.openrouter.max_retries,
        },
    )
    return config
