"""Tests for prompt assembly and structured recipe generation."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from healthy_meal.api.exceptions import ClassifiedError, ErrorCode, FailureKind
from healthy_meal.config.llm import RecipeGenerationConfig
from healthy_meal.models.llm.llm_models import ChatCompletionResponse
from healthy_meal.models.recipe import GeneratedRecipe, RecipeSource
from healthy_meal.services.recipe_generator import (
    RECIPE_SCHEMA,
    RECIPE_SCHEMA_NAME,
    RecipeGenerator,
    build_system_message,
    build_user_message,
    format_preferences,
)
from tests.conftest import ReplayTransport, completion_body

CARBONARA = RecipeSource(
    title="Pasta Carbonara",
    content="Spaghetti, guanciale, eggs, pecorino. Toss hot pasta with egg and cheese.",
)

VEGAN_CARBONARA = {
    "title": "Vegan Pasta Carbonara",
    "ingredients": [
        {"name": "spaghetti", "quantity": "200g"},
        {"name": "smoked tofu", "quantity": "150g"},
    ],
    "instructions": ["Boil pasta", "Crisp the tofu", "Toss with cashew sauce"],
}


def _fake_client(content) -> AsyncMock:
    client = AsyncMock()
    client.chat_completion_with_schema.return_value = ChatCompletionResponse.model_validate(
        completion_body(content)
    )
    return client


def _sent_messages(transport: ReplayTransport) -> dict[str, str]:
    return {m["role"]: m["content"] for m in transport.json_body()["messages"]}


@pytest.mark.asyncio
async def test_vegan_variant_end_to_end(make_client) -> None:
    body = completion_body(json.dumps(VEGAN_CARBONARA))
    transport = ReplayTransport(httpx.Response(200, json=body))
    async with make_client(transport) as client:
        generator = RecipeGenerator(client)
        recipe = await generator.generate_recipe_from_existing([CARBONARA], diets=["vegan"])

    assert recipe == VEGAN_CARBONARA
    assert GeneratedRecipe.model_validate(recipe).title == "Vegan Pasta Carbonara"

    sent = transport.json_body()
    assert sent["model"] == "openai/gpt-4o-2024-08-06"
    assert sent["temperature"] == 0.8
    assert sent["max_tokens"] == 2000
    assert sent["response_format"]["json_schema"]["name"] == RECIPE_SCHEMA_NAME
    assert sent["response_format"]["json_schema"]["strict"] is False

    messages = _sent_messages(transport)
    assert "Recipe 1: Pasta Carbonara" in messages["user"]
    assert CARBONARA.content in messages["user"]
    assert "vegan" in messages["user"]
    assert "inspired by the style" in messages["system"]


@pytest.mark.asyncio
async def test_no_context_fails_before_any_request() -> None:
    client = _fake_client({"title": "unused"})
    generator = RecipeGenerator(client)

    with pytest.raises(ClassifiedError) as exc_info:
        await generator.generate_recipe_from_existing([], custom_prompt="   ")

    assert exc_info.value.code is ErrorCode.VALIDATION_ERROR
    client.chat_completion_with_schema.assert_not_called()


@pytest.mark.asyncio
async def test_all_empty_inputs_fail_before_any_request() -> None:
    client = _fake_client({"title": "unused"})
    generator = RecipeGenerator(client)

    with pytest.raises(ClassifiedError) as exc_info:
        await generator.generate_recipe_from_existing(
            [],
            diets=[],
            allergens=[],
            disliked_ingredients=[],
            calorie_target=None,
            custom_prompt="",
        )

    assert exc_info.value.code is ErrorCode.VALIDATION_ERROR
    client.chat_completion_with_schema.assert_not_called()


@pytest.mark.asyncio
async def test_preferences_only_generation() -> None:
    client = _fake_client({"title": "Gluten-free Pancakes"})
    generator = RecipeGenerator(client)

    recipe = await generator.generate_recipe_from_existing(
        None,
        diets=["gluten-free"],
        allergens=["peanuts"],
        disliked_ingredients=["cilantro"],
        calorie_target=450,
    )

    assert recipe["title"] == "Gluten-free Pancakes"
    request, schema, schema_name = client.chat_completion_with_schema.await_args.args
    assert schema is RECIPE_SCHEMA
    assert schema_name == RECIPE_SCHEMA_NAME
    assert client.chat_completion_with_schema.await_args.kwargs == {"strict": False}
    system, user = request["messages"]
    assert "dietary preferences and requirements" in system["content"]
    assert user["content"].startswith("User preferences:\n")
    assert "Allergens to avoid: peanuts" in user["content"]
    assert "Disliked ingredients to avoid: cilantro" in user["content"]
    assert "Target calorie range: around 450 calories per serving" in user["content"]


@pytest.mark.asyncio
async def test_overrides_and_config_defaults() -> None:
    client = _fake_client({"title": "Soup"})
    config = RecipeGenerationConfig(model="openai/gpt-4o-mini", temperature=0.3, max_tokens=500)
    generator = RecipeGenerator(client, config)

    await generator.generate_recipe_from_existing([CARBONARA])
    request = client.chat_completion_with_schema.await_args.args[0]
    assert (request["model"], request["temperature"], request["max_tokens"]) == (
        "openai/gpt-4o-mini",
        0.3,
        500,
    )

    await generator.generate_recipe_from_existing(
        [CARBONARA], model="anthropic/claude-3.5-sonnet", temperature=0, max_tokens=64
    )
    request = client.chat_completion_with_schema.await_args.args[0]
    assert (request["model"], request["temperature"], request["max_tokens"]) == (
        "anthropic/claude-3.5-sonnet",
        0,
        64,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [["not", "an", "object"], {"description": "no title"}])
async def test_result_without_title_is_rejected(content) -> None:
    generator = RecipeGenerator(_fake_client(content))

    with pytest.raises(ClassifiedError) as exc_info:
        await generator.generate_recipe_from_existing([CARBONARA])

    assert exc_info.value.code is ErrorCode.INTERNAL_ERROR
    assert exc_info.value.message == "Invalid recipe format received from AI"


@pytest.mark.asyncio
async def test_client_errors_propagate_unchanged(make_client) -> None:
    transport = ReplayTransport(httpx.Response(402, json={"error": {"message": "no credits"}}))
    async with make_client(transport) as client:
        with pytest.raises(ClassifiedError) as exc_info:
            await RecipeGenerator(client).generate_recipe_from_existing([CARBONARA])

    assert exc_info.value.kind is FailureKind.PAYMENT_REQUIRED
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_variant_prompt_wraps_source_recipe() -> None:
    client = _fake_client({"title": "Carbonara, lighter"})
    generator = RecipeGenerator(client)

    await generator.generate_recipe_variant(
        {"title": "Pasta Carbonara", "content": "Eggs and cheese"},
        custom_prompt="Make it lighter",
        diets=["vegetarian"],
    )

    user = client.chat_completion_with_schema.await_args.args[0]["messages"][1]["content"]
    assert "Recipe 1: Pasta Carbonara\nEggs and cheese" in user
    assert "Create a variant of this recipe that:" in user
    assert "Make it lighter" in user
    assert "Dietary preferences: vegetarian" in user


@pytest.mark.asyncio
@pytest.mark.parametrize("source", [None, {"title": "  ", "content": "x"}])
async def test_variant_requires_titled_recipe(source) -> None:
    client = _fake_client({"title": "unused"})

    with pytest.raises(ClassifiedError) as exc_info:
        await RecipeGenerator(client).generate_recipe_variant(source)

    assert exc_info.value.message == "Existing recipe is required"
    client.chat_completion_with_schema.assert_not_called()


def test_format_preferences_skips_blank_values() -> None:
    assert format_preferences() is None
    assert format_preferences(diets=["", "  "], allergens=[]) is None
    assert format_preferences(diets=["vegan", "keto"]) == (
        "User preferences:\nDietary preferences: vegan, keto"
    )


def test_format_preferences_treats_single_string_as_one_value() -> None:
    assert format_preferences(diets="vegan", allergens=" peanuts ") == (
        "User preferences:\nDietary preferences: vegan\nAllergens to avoid: peanuts"
    )


def test_user_message_joins_recipes_with_separator() -> None:
    recipes = [RecipeSource(title="A", content="a"), RecipeSource(title="B", content="b")]
    message = build_user_message(recipes, "Quick please", None)
    assert "Recipe 1: A\na\n\n---\n\nRecipe 2: B\nb" in message
    assert message.index("Quick please") > message.index("Recipe 2")


def test_system_message_variants() -> None:
    assert "existing recipes" in build_system_message(True)
    assert "existing recipes" not in build_system_message(False)
    for has_recipes in (True, False):
        assert build_system_message(has_recipes).endswith(
            "Generate the recipe in the exact JSON format specified."
        )
