from __future__ import annotations

from typing import Any


def validate_model_name(model: str) -> str:
    """Validate model name for security and allow OpenRouter-style IDs."""
    if not model:
        msg = "Model name cannot be empty"
        raise ValueError(msg)
    if len(model) > 100:
        msg = "Model name too long"
        raise ValueError(msg)

    if ".." in model or "<" in model or ">" in model or "\\" in model:
        msg = "Model name contains invalid characters"
        raise ValueError(msg)

    allowed = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.:/")
    if any(ch not in allowed for ch in model):
        msg = "Model name contains invalid characters"
        raise ValueError(msg)

    return model


def _ensure_api_key(value: str, *, name: str) -> str:
    if not value:
        msg = f"{name} API key is required"
        raise ValueError(msg)
    value = value.strip()
    if not value:
        msg = f"{name} API key is required"
        raise ValueError(msg)
    if len(value) > 500:
        msg = f"{name} API key appears to be too long"
        raise ValueError(msg)
    if any(char in value for char in [" ", "\n", "\t"]):
        msg = f"{name} API key contains invalid characters"
        raise ValueError(msg)
    return value


def _parse_float_in_range(
    value: Any, *, default: float, low: float, high: float, label: str
) -> float:
    if value in (None, ""):
        return default
    try:
        parsed = float(str(value))
    except ValueError as exc:
        msg = f"{label} must be a valid number"
        raise ValueError(msg) from exc
    if parsed < low or parsed > high:
        msg = f"{label} must be between {low:g} and {high:g}"
        raise ValueError(msg)
    return parsed


def _parse_int_in_range(value: Any, *, default: int, low: int, high: int, label: str) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(str(value))
    except ValueError as exc:
        msg = f"{label} must be a valid integer"
        raise ValueError(msg) from exc
    if parsed < low or parsed > high:
        msg = f"{label} must be between {low} and {high}"
        raise ValueError(msg)
    return parsed
