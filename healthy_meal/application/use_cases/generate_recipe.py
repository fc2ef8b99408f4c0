"""Use cases for generating recipes for a user.

They join the stored recipe and profile data with the request parameters and
hand the result to :class:`RecipeGenerator`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from healthy_meal.api.exceptions import not_found_error
from healthy_meal.core.logging_utils import generate_correlation_id
from healthy_meal.models.recipe import DietaryPreferences
from healthy_meal.protocols import ProfileStore, RecipeStore
from healthy_meal.services.recipe_generator import RecipeGenerator

logger = logging.getLogger(__name__)


@dataclass
class GenerateFromRecipeCommand:
    """Command for generating a variant of one of the user's recipes."""

    user_id: str
    recipe_id: str
    custom_prompt: str | None = None
    diets: list[str] = field(default_factory=list)
    correlation_id: str | None = None

    def __post_init__(self) -> None:
        """Validate command parameters."""
        if not self.user_id or not self.user_id.strip():
            msg = "user_id must not be empty"
            raise ValueError(msg)
        if not self.recipe_id or not self.recipe_id.strip():
            msg = "recipe_id must not be empty"
            raise ValueError(msg)


@dataclass
class GenerateFromPreferencesCommand:
    """Command for generating a recipe from the user's preferences alone."""

    user_id: str
    diets: list[str] = field(default_factory=list)
    custom_prompt: str | None = None
    correlation_id: str | None = None

    def __post_init__(self) -> None:
        if not self.user_id or not self.user_id.strip():
            msg = "user_id must not be empty"
            raise ValueError(msg)


class GenerateRecipeUseCase:
    """Generates recipes for a user from stored recipes and profile preferences.

    Diets given on the command take precedence over the diets saved on the
    profile; allergens, disliked ingredients and the calorie target always
    come from the profile.

    Example:
        ```python
        use_case = GenerateRecipeUseCase(
            generator=RecipeGenerator(openrouter_client),
            recipe_store=recipe_store,
            profile_store=profile_store,
        )
        recipe = await use_case.generate_from_recipe(
            GenerateFromRecipeCommand(user_id="u-1", recipe_id="r-1", diets=["vegan"])
        )
        ```

    """

    def __init__(
        self,
        generator: RecipeGenerator,
        recipe_store: RecipeStore,
        profile_store: ProfileStore,
    ) -> None:
        self._generator = generator
        self._recipe_store = recipe_store
        self._profile_store = profile_store

    async def generate_from_recipe(self, command: GenerateFromRecipeCommand) -> dict[str, Any]:
        """Generate a variant of a stored recipe.

        Raises:
            ClassifiedError: NOT_FOUND if the recipe does not exist, or any
                error raised while generating.

        """
        cid = command.correlation_id or generate_correlation_id()
        recipe = await self._recipe_store.get_recipe(command.recipe_id)
        if recipe is None:
            logger.info(
                "generate_recipe_source_missing",
                extra={"cid": cid, "user_id": command.user_id, "recipe_id": command.recipe_id},
            )
            raise not_found_error("Recipe not found")

        preferences = await self._load_preferences(command.user_id)
        logger.info(
            "generate_recipe_variant_started",
            extra={"cid": cid, "user_id": command.user_id, "recipe_id": command.recipe_id},
        )
        return await self._generator.generate_recipe_variant(
            recipe,
            custom_prompt=command.custom_prompt,
            diets=command.diets or preferences.diets,
            allergens=preferences.allergens,
            disliked_ingredients=preferences.disliked_ingredients,
            calorie_target=preferences.calorie_target,
        )

    async def generate_from_preferences(
        self, command: GenerateFromPreferencesCommand
    ) -> dict[str, Any]:
        """Generate a recipe driven only by preferences and the custom prompt."""
        cid = command.correlation_id or generate_correlation_id()
        preferences = await self._load_preferences(command.user_id)
        logger.info(
            "generate_recipe_from_preferences_started",
            extra={
                "cid": cid,
                "user_id": command.user_id,
                "diets_override": bool(command.diets),
            },
        )
        return await self._generator.generate_recipe_from_existing(
            [],
            custom_prompt=command.custom_prompt,
            diets=command.diets or preferences.diets,
            allergens=preferences.allergens,
            disliked_ingredients=preferences.disliked_ingredients,
            calorie_target=preferences.calorie_target,
        )

    async def _load_preferences(self, user_id: str) -> DietaryPreferences:
        preferences = await self._profile_store.get_preferences(user_id)
        return preferences or DietaryPreferences()
