"""Recipe generation on top of the structured-output chat client."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from healthy_meal.api.exceptions import internal_error, validation_error
from healthy_meal.config.llm import RecipeGenerationConfig
from healthy_meal.models.recipe import RecipeSource

if TYPE_CHECKING:
    from healthy_meal.protocols import ChatCompletionClient

logger = logging.getLogger(__name__)

RECIPE_SCHEMA_NAME = "generated_recipe"

RECIPE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Recipe title"},
        "description": {"type": "string", "description": "Brief description of the recipe"},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Ingredient name"},
                    "quantity": {
                        "type": "string",
                        "description": 'Quantity and unit (e.g., "2 cups", "500g")',
                    },
                },
                "required": ["name", "quantity"],
                "additionalProperties": False,
            },
            "description": "List of ingredients with quantities",
        },
        "instructions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Step-by-step cooking instructions",
        },
        "prep_time": {"type": "number", "description": "Preparation time in minutes"},
        "cook_time": {"type": "number", "description": "Cooking time in minutes"},
        "servings": {"type": "number", "description": "Number of servings"},
        "difficulty": {
            "type": "string",
            "enum": ["easy", "medium", "hard"],
            "description": "Difficulty level",
        },
    },
    "required": ["title"],
    "additionalProperties": False,
}

_SYSTEM_INTRO = (
    "You are an expert chef and recipe creator. Your task is to generate a new, creative recipe."
)
_SYSTEM_FROM_RECIPES = (
    " The new recipe should:\n"
    "- Be inspired by the style, ingredients, or techniques from the existing recipes\n"
    "- Be a unique, creative combination or variation"
)
_SYSTEM_FROM_PREFERENCES = (
    " The new recipe should:\n- Be created based on the user's dietary preferences and requirements"
)
_SYSTEM_OUTRO = (
    "\n- Include clear, step-by-step instructions"
    "\n- List all ingredients with quantities"
    "\n- Be practical and achievable for home cooking"
    "\n\nGenerate the recipe in the exact JSON format specified."
)

_CLOSING_FROM_RECIPES = (
    "Generate a new, creative recipe inspired by these recipes. "
    "Make it unique while drawing inspiration from the provided examples."
)
_CLOSING_FROM_PREFERENCES = (
    "Generate a new, creative recipe that meets these requirements. "
    "Make it delicious, practical, and suitable for home cooking."
)

_VARIANT_TEMPLATE = """Create a variant of this recipe that:
- Maintains the core essence and style of the original recipe
- Adapts it according to the user's dietary preferences and requirements (if provided)
- Makes it unique while keeping it recognizable as a variation
- Preserves the cooking techniques and flavor profile where possible

Original recipe:
{title}

{content}
{custom}
Generate a variant recipe that is a creative adaptation of the original."""


def _as_source(recipe: RecipeSource | Mapping[str, Any]) -> RecipeSource:
    if isinstance(recipe, RecipeSource):
        return recipe
    return RecipeSource(
        title=str(recipe.get("title") or ""),
        content=str(recipe.get("content") or ""),
    )


def _clean(values: Sequence[str] | str | None) -> list[str]:
    if isinstance(values, str):
        values = [values]
    return [value.strip() for value in values or () if value and value.strip()]


def format_recipes_context(recipes: Sequence[RecipeSource]) -> str:
    return "\n\n---\n\n".join(
        f"Recipe {index}: {recipe.title}\n{recipe.content}"
        for index, recipe in enumerate(recipes, start=1)
    )


def format_preferences(
    *,
    diets: Sequence[str] | str | None = None,
    allergens: Sequence[str] | str | None = None,
    disliked_ingredients: Sequence[str] | str | None = None,
    calorie_target: int | None = None,
) -> str | None:
    """Render preferences as a ``User preferences:`` block, or None if there are none."""
    lines: list[str] = []
    if diets := _clean(diets):
        lines.append(f"Dietary preferences: {', '.join(diets)}")
    if allergens := _clean(allergens):
        lines.append(f"Allergens to avoid: {', '.join(allergens)}")
    if disliked := _clean(disliked_ingredients):
        lines.append(f"Disliked ingredients to avoid: {', '.join(disliked)}")
    if calorie_target:
        lines.append(f"Target calorie range: around {calorie_target} calories per serving")
    if not lines:
        return None
    return "User preferences:\n" + "\n".join(lines)


def build_system_message(has_recipes: bool) -> str:
    body = _SYSTEM_FROM_RECIPES if has_recipes else _SYSTEM_FROM_PREFERENCES
    return _SYSTEM_INTRO + body + _SYSTEM_OUTRO


def build_user_message(
    recipes: Sequence[RecipeSource], custom_prompt: str | None, preferences: str | None
) -> str:
    instructions = "\n\n".join(part for part in (custom_prompt, preferences) if part)
    if recipes:
        parts = [f"Based on these existing recipes:\n\n{format_recipes_context(recipes)}"]
        if instructions:
            parts.append(instructions)
        parts.append(_CLOSING_FROM_RECIPES)
        return "\n\n".join(parts)
    return f"{instructions}\n\n{_CLOSING_FROM_PREFERENCES}"


class RecipeGenerator:
    """Turns existing recipes and dietary preferences into a new structured recipe."""

    def __init__(
        self,
        client: ChatCompletionClient,
        config: RecipeGenerationConfig | None = None,
    ) -> None:
        self._client = client
        self._config = config or RecipeGenerationConfig()

    async def generate_recipe_from_existing(
        self,
        existing_recipes: Sequence[RecipeSource | Mapping[str, Any]] | None,
        *,
        custom_prompt: str | None = None,
        diets: Sequence[str] | None = None,
        allergens: Sequence[str] | None = None,
        disliked_ingredients: Sequence[str] | None = None,
        calorie_target: int | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Generate a recipe inspired by ``existing_recipes`` and the preferences.

        At least one recipe, one preference value or a non-blank custom prompt
        is required; otherwise a VALIDATION_ERROR is raised before any request
        is sent. Classified errors from the client propagate unchanged.

        Returns:
            The decoded recipe object, with at least a ``title``.

        """
        recipes = [_as_source(recipe) for recipe in existing_recipes or ()]
        prompt = custom_prompt.strip() if custom_prompt and custom_prompt.strip() else None
        preferences = format_preferences(
            diets=diets,
            allergens=allergens,
            disliked_ingredients=disliked_ingredients,
            calorie_target=calorie_target,
        )

        if not recipes and preferences is None and prompt is None:
            msg = (
                "At least one existing recipe is required for generation, "
                "or provide dietary preferences"
            )
            raise validation_error(msg)

        request = {
            "model": model or self._config.model,
            "messages": [
                {"role": "system", "content": build_system_message(bool(recipes))},
                {"role": "user", "content": build_user_message(recipes, prompt, preferences)},
            ],
            "temperature": temperature if temperature is not None else self._config.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self._config.max_tokens,
        }

        logger.info(
            "recipe_generation_started",
            extra={
                "model": request["model"],
                "recipes_count": len(recipes),
                "has_preferences": preferences is not None,
                "has_custom_prompt": prompt is not None,
            },
        )

        response = await self._client.chat_completion_with_schema(
            request, RECIPE_SCHEMA, RECIPE_SCHEMA_NAME, strict=False
        )
        recipe = response.choices[0].message.content

        if not isinstance(recipe, dict) or not recipe.get("title"):
            logger.error(
                "recipe_generation_invalid_format",
                extra={"model": request["model"], "content_type": type(recipe).__name__},
            )
            raise internal_error("Invalid recipe format received from AI")

        logger.info(
            "recipe_generation_completed",
            extra={"model": response.model, "title": recipe["title"]},
        )
        return recipe

    async def generate_recipe_variant(
        self,
        existing_recipe: RecipeSource | Mapping[str, Any] | None,
        *,
        custom_prompt: str | None = None,
        diets: Sequence[str] | None = None,
        allergens: Sequence[str] | None = None,
        disliked_ingredients: Sequence[str] | None = None,
        calorie_target: int | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Generate a recognisable variation of a single recipe."""
        if existing_recipe is None:
            raise validation_error("Existing recipe is required")
        source = _as_source(existing_recipe)
        if not source.title.strip():
            raise validation_error("Existing recipe is required")

        extra = f"\n\n{custom_prompt.strip()}\n" if custom_prompt and custom_prompt.strip() else ""
        variant_prompt = _VARIANT_TEMPLATE.format(
            title=source.title, content=source.content, custom=extra
        )

        return await self.generate_recipe_from_existing(
            [source],
            custom_prompt=variant_prompt,
            diets=diets,
            allergens=allergens,
            disliked_ingredients=disliked_ingredients,
            calorie_target=calorie_target,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
