"""Nutrition domain models."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from calorie_optimizer.domain.recipes import IngredientLine


class FoodCategory(str, Enum):
    """FoodData Central data types usable as a search filter."""

    FOUNDATION = "Foundation"
    SR_LEGACY = "SR Legacy"
    BRANDED = "Branded"
    SURVEY = "Survey (FNDDS)"
    EXPERIMENTAL = "Experimental"


class GramSource(str, Enum):
    """Conversion tier that produced a mass estimate."""

    WEIGHT = "weight"
    PORTION = "portion"
    ASSUMED_GRAMS = "assumed_grams"
    FALLBACK_100G = "fallback_100g"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FoodSearchHit:
    """Search result from FDC."""

    id: int
    description: str
    data_type: str | None
    food_category: str | None = None
    brand_owner: str | None = None
    brand_name: str | None = None
    published_date: str | None = None
    common_names: str | None = None
    additional_descriptions: str | None = None


class FoodNutrient(BaseModel):
    """Single nutrient value per 100 g."""

    model_config = ConfigDict(frozen=True)

    nutrient_id: int | None = None
    name: str = ""
    unit: str = ""
    value: float = 0.0


class FoodPortion(BaseModel):
    """Food-specific serving unit with its gram weight."""

    model_config = ConfigDict(frozen=True)

    measure_unit_name: str = ""
    modifier: str = ""
    gram_weight: float | None = None


class FoodDetail(BaseModel):
    """Complete nutrition record for one FDC food.

    Treated as an immutable snapshot: a refetch replaces the whole record.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    description: str = ""
    data_type: str | None = None
    nutrients: list[FoodNutrient] = Field(default_factory=list)
    portions: list[FoodPortion] = Field(default_factory=list)


@dataclass(frozen=True)
class CalorieMeta:
    """How a calorie figure was derived."""

    id: int
    description: str
    kcal_per_100g: float
    grams: float
    gram_source: GramSource
    energy_known: bool = True


@dataclass(frozen=True)
class CalorieResult:
    """Energy contribution of one ingredient line."""

    calories: float
    meta: CalorieMeta


@dataclass(frozen=True)
class IngredientCalories:
    """Outcome of resolving one ingredient inside a batch."""

    line: IngredientLine
    result: CalorieResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the line was resolved."""
        return self.result is not None


@dataclass(frozen=True)
class BatchCalories:
    """Per-ingredient outcomes and their summed energy."""

    items: list[IngredientCalories]
    total_calories: float

    @property
    def failures(self) -> list[IngredientCalories]:
        """Return the lines that could not be resolved."""
        return [item for item in self.items if not item.ok]
