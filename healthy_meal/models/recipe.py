"""Recipe-side values exchanged with the stores and the generator."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class RecipeSource(BaseModel):
    """An existing recipe, serialized for prompting."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str = ""


class DietaryPreferences(BaseModel):
    """Profile preferences that shape a generated recipe."""

    model_config = ConfigDict(frozen=True)

    diets: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    disliked_ingredients: list[str] = Field(default_factory=list)
    calorie_target: int | None = None


class Ingredient(BaseModel):
    name: str
    quantity: str


class GeneratedRecipe(BaseModel):
    """Typed view of the structured recipe returned by the model."""

    title: str
    description: str | None = None
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    prep_time: float | None = None
    cook_time: float | None = None
    servings: float | None = None
    difficulty: Literal["easy", "medium", "hard"] | None = None
