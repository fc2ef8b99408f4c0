"""Tests for the recipe generation CLI."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from healthy_meal.cli.generate import parse_args, read_recipe_file, run_generate_cli
from tests.conftest import ReplayTransport, completion_body


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-cli-key")
    monkeypatch.setenv("OPENROUTER_BACKOFF_BASE", "0")
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    # setup_json_logging replaces the root handlers.
    root.handlers[:] = handlers
    root.setLevel(level)


def test_read_text_recipe(tmp_path) -> None:
    path = tmp_path / "carbonara.txt"
    path.write_text("Pasta Carbonara\nSpaghetti, eggs, pecorino.\n", encoding="utf-8")

    recipe = read_recipe_file(path)

    assert recipe.title == "Pasta Carbonara"
    assert recipe.content == "Spaghetti, eggs, pecorino."


def test_read_json_recipe_with_structured_content(tmp_path) -> None:
    path = tmp_path / "soup.json"
    path.write_text(
        json.dumps({"title": "Soup", "content_json": {"steps": ["boil"]}}), encoding="utf-8"
    )

    recipe = read_recipe_file(path)

    assert recipe.title == "Soup"
    assert json.loads(recipe.content) == {"steps": ["boil"]}


@pytest.mark.asyncio
async def test_generate_writes_recipe_json(tmp_path) -> None:
    source = tmp_path / "carbonara.txt"
    source.write_text("Pasta Carbonara\nEggs and cheese", encoding="utf-8")
    output = tmp_path / "out.json"
    generated = {"title": "Vegan Carbonara", "ingredients": [], "instructions": []}
    transport = ReplayTransport(httpx.Response(200, json=completion_body(json.dumps(generated))))

    args = parse_args(
        [
            "--recipe-file",
            str(source),
            "--variant",
            "--diet",
            "vegan",
            "--json-path",
            str(output),
        ]
    )
    result = await run_generate_cli(args, transport=transport.mock())

    assert result == generated
    assert json.loads(output.read_text(encoding="utf-8")) == generated
    user_message = transport.json_body()["messages"][1]["content"]
    assert "Create a variant of this recipe that:" in user_message
    assert "Dietary preferences: vegan" in user_message
    assert transport.requests[0].headers["Authorization"] == "Bearer sk-or-cli-key"


@pytest.mark.asyncio
async def test_list_models(tmp_path) -> None:
    output = tmp_path / "models.json"
    transport = ReplayTransport(httpx.Response(200, json={"data": [{"id": "openai/gpt-4o"}]}))

    args = parse_args(["--list-models", "--json-path", str(output)])
    result = await run_generate_cli(args, transport=transport.mock())

    assert result == {"data": [{"id": "openai/gpt-4o", "name": None}]}
    assert transport.requests[0].url.path.endswith("/models")


@pytest.mark.asyncio
async def test_variant_needs_single_recipe() -> None:
    args = parse_args(["--variant", "--diet", "vegan"])
    with pytest.raises(SystemExit):
        await run_generate_cli(args, transport=ReplayTransport(httpx.Response(500)).mock())
