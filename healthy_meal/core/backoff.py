"""Exponential backoff with jitter between upstream attempts."""

from __future__ import annotations

import random


def backoff_delay(attempt: int, backoff_base: float = 0.5, max_delay: float = 30.0) -> float:
    """Return the delay in seconds before the attempt following ``attempt``.

    Delay formula: ``min(max_delay, backoff_base * 2^attempt) * (1 + uniform(-0.25, 0.25))``
    """
    base_delay = min(max_delay, max(0.0, backoff_base * (2**attempt)))
    jitter = 1.0 + random.uniform(-0.25, 0.25)
    return base_delay * jitter

