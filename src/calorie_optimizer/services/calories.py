"""Resolve ingredient lines to energy values."""

import asyncio
import logging
from dataclasses import dataclass

from calorie_optimizer.domain.errors import NotFoundError, UpstreamError
from calorie_optimizer.domain.nutrition import (
    BatchCalories,
    CalorieMeta,
    CalorieResult,
    FoodCategory,
    FoodDetail,
    IngredientCalories,
)
from calorie_optimizer.domain.recipes import IngredientLine
from calorie_optimizer.services.nutrition import NutritionService
from calorie_optimizer.services.search import SearchAggregator
from calorie_optimizer.services.units import grams_for

ENERGY_NUTRIENT_ID = 1008

_logger = logging.getLogger(__name__)


@dataclass
class CalorieResolver:
    """Turns (quantity, unit, food) into calories."""

    nutrition_service: NutritionService
    search_aggregator: SearchAggregator

    async def resolve(self, quantity: float, unit: str, name: str) -> CalorieResult:
        """Resolve an ingredient by name using the top Foundation match."""
        fdc_id = await self._top_foundation_id(name)
        return await self.resolve_by_id(quantity, unit, fdc_id)

    async def food_details(self, name: str) -> FoodDetail:
        """Return the full detail record of the top Foundation match."""
        fdc_id = await self._top_foundation_id(name)
        return await self.nutrition_service.get_detail(fdc_id)

    async def resolve_any(
        self, quantity: float, unit: str, names: list[str]
    ) -> CalorieResult:
        """Resolve using the first Foundation match across name variants."""
        hits = await self.search_aggregator.multi_search(
            names, limit=1, category=FoodCategory.FOUNDATION
        )
        if not hits:
            raise NotFoundError(f"No USDA foods found for any of {names!r}.")
        return await self.resolve_by_id(quantity, unit, hits[0].id)

    async def resolve_by_id(
        self, quantity: float, unit: str, fdc_id: int
    ) -> CalorieResult:
        """Resolve an ingredient against a known FDC id."""
        food = await self.nutrition_service.get_detail(fdc_id)
        energy = extract_energy_kcal(food)
        kcal_per_100g = energy if energy is not None else 0.0
        grams, source = grams_for(quantity, unit, food)

        return CalorieResult(
            calories=kcal_per_100g / 100.0 * grams,
            meta=CalorieMeta(
                id=fdc_id,
                description=food.description,
                kcal_per_100g=kcal_per_100g,
                grams=grams,
                gram_source=source,
                energy_known=energy is not None,
            ),
        )

    async def resolve_many(
        self,
        lines: list[IngredientLine],
        isolate: tuple[type[Exception], ...] = (NotFoundError, UpstreamError),
    ) -> BatchCalories:
        """Resolve every line, recording `isolate` failures instead of aborting.

        Any other error cancels the remaining lookups and is re-raised.
        """
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self._resolve_line(line, isolate))
                    for line in lines
                ]
        except ExceptionGroup as errors:
            raise errors.exceptions[0] from None
        items = [task.result() for task in tasks]
        total = sum(item.result.calories for item in items if item.result is not None)
        return BatchCalories(items=items, total_calories=total)

    async def _resolve_line(
        self, line: IngredientLine, isolate: tuple[type[Exception], ...]
    ) -> IngredientCalories:
        try:
            result = await self.resolve(line.quantity, line.unit, line.name)
        except isolate as exc:
            _logger.warning("Could not resolve ingredient %r: %s", line.as_text(), exc)
            return IngredientCalories(line=line, error=str(exc))
        return IngredientCalories(line=line, result=result)

    async def _top_foundation_id(self, name: str) -> int:
        hits = await self.nutrition_service.search(
            name, limit=1, category=FoodCategory.FOUNDATION
        )
        if not hits or not hits[0].id:
            raise NotFoundError(f"No USDA foods found for '{name}'.")
        return hits[0].id


def extract_energy_kcal(food: FoodDetail) -> float | None:
    """Return kcal per 100 g, or None when the record carries no energy value."""
    for nutrient in food.nutrients:
        if nutrient.nutrient_id == ENERGY_NUTRIENT_ID:
            return nutrient.value
        if nutrient.unit.lower() == "kcal" and nutrient.name.startswith("Energy"):
            return nutrient.value
    return None
