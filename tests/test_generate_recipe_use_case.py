"""Tests for the recipe generation use cases with in-memory stores."""

import unittest
from unittest.mock import AsyncMock

from healthy_meal.api.exceptions import ClassifiedError, ErrorCode
from healthy_meal.application.use_cases.generate_recipe import (
    GenerateFromPreferencesCommand,
    GenerateFromRecipeCommand,
    GenerateRecipeUseCase,
)
from healthy_meal.models.recipe import DietaryPreferences, RecipeSource


class InMemoryRecipeStore:
    def __init__(self, recipes: dict[str, RecipeSource]) -> None:
        self.recipes = recipes

    async def get_recipe(self, recipe_id: str) -> RecipeSource | None:
        return self.recipes.get(recipe_id)


class InMemoryProfileStore:
    def __init__(self, profiles: dict[str, DietaryPreferences]) -> None:
        self.profiles = profiles

    async def get_preferences(self, user_id: str) -> DietaryPreferences | None:
        return self.profiles.get(user_id)


class TestGenerateRecipeUseCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.recipe = RecipeSource(title="Pasta Carbonara", content="Eggs, cheese, pasta")
        self.generator = AsyncMock()
        self.generator.generate_recipe_variant.return_value = {"title": "Variant"}
        self.generator.generate_recipe_from_existing.return_value = {"title": "Fresh"}
        self.use_case = GenerateRecipeUseCase(
            generator=self.generator,
            recipe_store=InMemoryRecipeStore({"r-1": self.recipe}),
            profile_store=InMemoryProfileStore(
                {
                    "u-1": DietaryPreferences(
                        diets=["vegetarian"],
                        allergens=["peanuts"],
                        disliked_ingredients=["olives"],
                        calorie_target=600,
                    )
                }
            ),
        )

    async def test_missing_recipe_is_not_found(self):
        with self.assertRaises(ClassifiedError) as ctx:
            await self.use_case.generate_from_recipe(
                GenerateFromRecipeCommand(user_id="u-1", recipe_id="missing")
            )
        assert ctx.exception.code is ErrorCode.NOT_FOUND
        assert ctx.exception.status_code == 404
        self.generator.generate_recipe_variant.assert_not_called()

    async def test_profile_preferences_merged_into_variant(self):
        result = await self.use_case.generate_from_recipe(
            GenerateFromRecipeCommand(user_id="u-1", recipe_id="r-1", custom_prompt="Spicier")
        )

        assert result == {"title": "Variant"}
        self.generator.generate_recipe_variant.assert_awaited_once_with(
            self.recipe,
            custom_prompt="Spicier",
            diets=["vegetarian"],
            allergens=["peanuts"],
            disliked_ingredients=["olives"],
            calorie_target=600,
        )

    async def test_request_diets_override_profile(self):
        await self.use_case.generate_from_recipe(
            GenerateFromRecipeCommand(user_id="u-1", recipe_id="r-1", diets=["vegan"])
        )
        kwargs = self.generator.generate_recipe_variant.await_args.kwargs
        assert kwargs["diets"] == ["vegan"]
        assert kwargs["allergens"] == ["peanuts"]

    async def test_user_without_profile_uses_request_only(self):
        await self.use_case.generate_from_preferences(
            GenerateFromPreferencesCommand(user_id="u-2", diets=["keto"])
        )
        self.generator.generate_recipe_from_existing.assert_awaited_once_with(
            [],
            custom_prompt=None,
            diets=["keto"],
            allergens=[],
            disliked_ingredients=[],
            calorie_target=None,
        )

    async def test_generate_from_preferences_uses_profile(self):
        result = await self.use_case.generate_from_preferences(
            GenerateFromPreferencesCommand(user_id="u-1", custom_prompt="Dinner for two")
        )
        assert result == {"title": "Fresh"}
        kwargs = self.generator.generate_recipe_from_existing.await_args.kwargs
        assert kwargs["diets"] == ["vegetarian"]
        assert kwargs["custom_prompt"] == "Dinner for two"


class TestCommands(unittest.TestCase):
    def test_blank_identifiers_rejected(self):
        with self.assertRaises(ValueError):
            GenerateFromRecipeCommand(user_id="", recipe_id="r-1")
        with self.assertRaises(ValueError):
            GenerateFromRecipeCommand(user_id="u-1", recipe_id=" ")
        with self.assertRaises(ValueError):
            GenerateFromPreferencesCommand(user_id="  ")


if __name__ == "__main__":
    unittest.main()
