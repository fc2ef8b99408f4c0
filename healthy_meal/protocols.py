"""Protocol definitions for the collaborators of recipe generation.

These protocols describe what the generator and the use cases need from the
outside world, so that storage and the upstream client can be swapped or faked
in tests.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from healthy_meal.models.llm.llm_models import ChatCompletionRequest, ChatCompletionResponse
from healthy_meal.models.recipe import DietaryPreferences, RecipeSource


class ChatCompletionClient(Protocol):
    """Protocol for an upstream chat client that supports structured output."""

    async def chat_completion_with_schema(
        self,
        request: ChatCompletionRequest | Mapping[str, Any],
        schema: dict[str, Any],
        schema_name: str,
        strict: bool = True,
    ) -> ChatCompletionResponse:
        """Run a completion whose content must conform to ``schema``."""
        ...


class RecipeStore(Protocol):
    """Protocol for reading a user's saved recipes."""

    async def get_recipe(self, recipe_id: str) -> RecipeSource | None:
        """Get a recipe by its ID.

        Returns:
            The recipe, or None if it does not exist.

        """
        ...


class ProfileStore(Protocol):
    """Protocol for reading a user's profile preferences."""

    async def get_preferences(self, user_id: str) -> DietaryPreferences | None:
        """Get the dietary preferences stored on a user's profile.

        Returns:
            The preferences, or None if the user has no profile yet.

        """
        ...
