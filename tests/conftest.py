"""Pytest configuration and shared fixtures.

Upstream traffic is served by ``httpx.MockTransport`` so that the real client,
retry loop included, runs without network access.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from healthy_meal.adapters.openrouter.openrouter_client import OpenRouterClient

TEST_API_KEY = "sk-or-test-key"


def completion_body(content: Any = "Hello there!", **overrides: Any) -> dict[str, Any]:
    """A successful chat-completions response body."""
    body: dict[str, Any] = {
        "id": "gen-123",
        "model": "openai/gpt-4o-mini",
        "created": 1700000000,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }
    body.update(overrides)
    return body


class ReplayTransport:
    """Replays queued responses in order and records every request.

    Items are ``httpx.Response`` objects or exceptions to raise. The last item
    is repeated once the queue runs out.
    """

    def __init__(self, *items: httpx.Response | Exception) -> None:
        self._items = list(items)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._items.pop(0) if len(self._items) > 1 else self._items[0]
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json_body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)

    def mock(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def make_client() -> Callable[..., OpenRouterClient]:
    """Factory for clients wired to a :class:`ReplayTransport`.

    Backoff is disabled so retried requests do not sleep.
    """

    def _make(transport: ReplayTransport, **kwargs: Any) -> OpenRouterClient:
        kwargs.setdefault("backoff_base", 0)
        return OpenRouterClient(TEST_API_KEY, transport=transport.mock(), **kwargs)

    return _make


@pytest.fixture
def user_messages() -> list[dict[str, str]]:
    return [
        {"role": "system", "content": "You are a helpful assistant."},
        {"role": "user", "content": "Suggest a quick breakfast."},
    ]
