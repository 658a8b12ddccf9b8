"""Recipe domain models and ingredient normalization."""

import math
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

DEFAULT_TITLE = "Untitled"


@dataclass(frozen=True)
class IngredientLine:
    """One normalized ingredient: quantity, unit and name."""

    quantity: float
    unit: str
    name: str

    def as_text(self) -> str:
        """Render the line the way a recipe would print it."""
        quantity = f"{self.quantity:g}"
        unit_part = f" {self.unit}" if self.unit else ""
        return f"{quantity}{unit_part} {self.name}".strip()


@dataclass(frozen=True)
class Recipe:
    """Recipe title with its ordered ingredient lines."""

    title: str
    ingredients: list[IngredientLine] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        """Return a JSON-friendly representation for prompts."""
        return {
            "title": self.title,
            "ingredients": [
                {"quantity": line.quantity, "unit": line.unit, "name": line.name}
                for line in self.ingredients
            ],
        }


class RawIngredient(BaseModel):
    """Ingredient as returned by the completion service, before normalization."""

    quantity: float | None = None
    unit: str | None = ""
    name: str | None = ""


class ExtractedRecipe(BaseModel):
    """Structured output of recipe extraction."""

    title: str | None = None
    ingredients: list[RawIngredient] = Field(default_factory=list)


class RecipeAdjustment(ExtractedRecipe):
    """Structured output of a recipe adjustment request."""

    changes: list[str] = Field(default_factory=list)


def normalize_line(raw: RawIngredient) -> IngredientLine | None:
    """Return a normalized line, or None when the line is unusable."""
    quantity = raw.quantity if raw.quantity is not None else 0.0
    name = (raw.name or "").strip()
    if not name or not math.isfinite(quantity) or quantity <= 0:
        return None
    return IngredientLine(quantity=quantity, unit=(raw.unit or "").strip(), name=name)


def normalize_recipe(extracted: ExtractedRecipe, fallback_title: str = "") -> Recipe:
    """Drop unusable lines and fill in a title."""
    lines = [
        line
        for line in (normalize_line(raw) for raw in extracted.ingredients)
        if line is not None
    ]
    title = (extracted.title or "").strip() or fallback_title or DEFAULT_TITLE
    return Recipe(title=title, ingredients=lines)


@dataclass(frozen=True)
class RecipeRevision:
    """Validated adjustment: the revised recipe and what was changed."""

    recipe: Recipe
    changes: list[str] = field(default_factory=list)
