"""Pydantic models for API request bodies."""

from pydantic import BaseModel, Field


class MultiSearchRequest(BaseModel):
    """Several search variants run together."""

    queries: list[str]
    limit: int = Field(default=10, gt=0)
    category: str | None = None


class IngredientInput(BaseModel):
    """One ingredient line supplied by the caller."""

    quantity: float | None = None
    unit: str | None = ""
    name: str | None = ""


class BatchCaloriesRequest(BaseModel):
    """Ingredient lines to resolve independently."""

    ingredients: list[IngredientInput]


class OptimizeRequest(BaseModel):
    """Recipe text and the calorie total to aim for."""

    recipe_text: str = Field(min_length=1)
    target_calories: float = Field(gt=0)
