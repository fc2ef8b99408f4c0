from __future__ import annotations

import datetime as dt
import json
import logging
import sys
import uuid
from typing import Any

from loguru import logger as loguru_logger

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_PERFORMANCE_FIELDS = frozenset(
    {"latency_ms", "delay_sec", "tokens_prompt", "tokens_completion", "total_tokens"}
)

_TRUNCATION_MARKER = "... [truncated]"


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class EnhancedJsonFormatter(logging.Formatter):
    """One JSON object per record, with performance numbers kept apart from other extras."""

    def __init__(self, include_location: bool = True) -> None:
        super().__init__()
        self.include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=dt.UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_location:
            entry["module"] = record.module
            entry["function"] = record.funcName
            entry["line"] = record.lineno
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }

        extras = _extra_fields(record)
        correlation_id = extras.pop("correlation_id", None)
        performance = {k: extras.pop(k) for k in list(extras) if k in _PERFORMANCE_FIELDS}
        if performance:
            entry["performance"] = performance
        if extras:
            entry["extra"] = extras
        if correlation_id is not None:
            entry["correlation_id"] = correlation_id

        return json.dumps(entry, ensure_ascii=False, default=_fallback_json, separators=(",", ":"))


def _fallback_json(obj: Any) -> str:
    if hasattr(obj, "__dict__"):
        return f"<{type(obj).__name__}>"
    return str(obj)


class _LoguruInterceptHandler(logging.Handler):
    """Hand stdlib records to loguru, binding their extras."""

    def emit(self, record: logging.LogRecord) -> None:
        level: int | str
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        bound = loguru_logger.bind(**_extra_fields(record))
        bound.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_json_logging(
    level: str = "INFO",
    include_location: bool = True,
    use_loguru: bool = False,
) -> None:
    """Send every record to stdout as JSON.

    Library modules only call ``logging.getLogger(__name__)``; entry points call
    this once.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        include_location: Add module, function and line to each entry
        use_loguru: Route records through a serialized loguru sink instead

    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if use_loguru:
        loguru_logger.remove()
        loguru_logger.add(sys.stdout, level=level.upper(), serialize=True, enqueue=True)
        root.addHandler(_LoguruInterceptHandler())
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(EnhancedJsonFormatter(include_location=include_location))
        root.addHandler(handler)

    # httpx logs every request URL at INFO.
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "json_logging_initialized",
        extra={"setup_config": {"level": level, "use_loguru": use_loguru}},
    )


def generate_correlation_id() -> str:
    """Short random id tying together the log lines of one generation."""
    return uuid.uuid4().hex[:12]


def truncate_log_content(content: str | None, max_length: int = 1000) -> str | None:
    """Shorten ``content`` to at most ``max_length`` characters for a log line.

    Long text is cut near a word boundary and ends with ``... [truncated]``.
    """
    if not content or len(content) <= max_length:
        return content
    if max_length <= 20:
        return content[:max_length] + "..."

    cut = max_length - len(_TRUNCATION_MARKER)
    head = content[:cut]
    space = head.rfind(" ", max(0, cut - 50))
    if space > cut - 100:
        head = head[:space]
    return head + _TRUNCATION_MARKER


__all__ = [
    "EnhancedJsonFormatter",
    "generate_correlation_id",
    "setup_json_logging",
    "truncate_log_content",
]
