from __future__ import annotations

from ._validators import validate_model_name
from .llm import DEFAULT_OPENROUTER_BASE_URL, OpenRouterConfig, RecipeGenerationConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "DEFAULT_OPENROUTER_BASE_URL",
    "AppConfig",
    "OpenRouterConfig",
    "RecipeGenerationConfig",
    "RuntimeConfig",
    "Settings",
    "load_config",
    "validate_model_name",
]
