"""Nutrition source integrating USDA FDC with a persistent detail cache."""

import logging
from dataclasses import dataclass, field

from calorie_optimizer.adapters.fdc_client import FdcClient
from calorie_optimizer.domain.nutrition import (
    FoodCategory,
    FoodDetail,
    FoodNutrient,
    FoodPortion,
    FoodSearchHit,
)
from calorie_optimizer.services.events import EventBus
from calorie_optimizer.services.food_cache import FoodDetailCache
from calorie_optimizer.services.resilience import RetryPolicy, call_with_retry

_logger = logging.getLogger(__name__)


@dataclass
class NutritionService:
    """Search and detail lookups against FDC."""

    fdc_client: FdcClient
    cache: FoodDetailCache
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    events: EventBus = field(default_factory=EventBus)

    async def search(
        self,
        query: str,
        limit: int = 10,
        category: FoodCategory | None = None,
    ) -> list[FoodSearchHit]:
        """Search FDC foods, optionally restricted to one category."""
        trimmed = query.strip()
        if not trimmed:
            raise ValueError("Missing search query")
        if limit <= 0:
            raise ValueError("Search limit must be positive")

        data_type = category.value if category is not None else None
        self.events.emit(
            "tool_invocation", tool="searchFoods", query=trimmed, data_type=data_type
        )
        payload = await call_with_retry(
            lambda: self.fdc_client.search_foods(
                trimmed, page_size=limit, data_type=data_type
            ),
            action=f"search:{trimmed}",
            policy=self.retry_policy,
            events=self.events,
        )
        hits = [
            _parse_hit(food)
            for food in payload.get("foods") or []
            if isinstance(food, dict) and food.get("fdcId")
        ]
        _logger.debug("FDC search: query=%s results=%s", trimmed, len(hits))
        return hits

    async def get_detail(self, fdc_id: int) -> FoodDetail:
        """Return food details, fetching from FDC only on a cache miss."""
        cached = self.cache.get(fdc_id)
        if cached is not None:
            return cached

        self.events.emit("tool_invocation", tool="getFoodDetails", fdc_id=fdc_id)
        payload = await call_with_retry(
            lambda: self.fdc_client.get_food(fdc_id),
            action=f"get_food:{fdc_id}",
            policy=self.retry_policy,
            events=self.events,
        )
        detail = parse_food_detail(payload, fallback_id=fdc_id)
        self.cache.put(fdc_id, detail)
        _logger.debug("FDC food fetched and cached: fdc_id=%s", fdc_id)
        return detail


def _parse_hit(food: dict[str, object]) -> FoodSearchHit:
    """Convert a raw search result into a hit."""
    return FoodSearchHit(
        id=int(food["fdcId"]),
        description=str(food.get("description") or ""),
        data_type=food.get("dataType"),
        food_category=_category_label(food.get("foodCategory")),
        brand_owner=food.get("brandOwner"),
        brand_name=food.get("brandName"),
        published_date=food.get("publishedDate"),
        common_names=food.get("commonNames"),
        additional_descriptions=food.get("additionalDescriptions"),
    )


def _category_label(raw: object) -> str | None:
    """Food category arrives as a string in search and an object in details."""
    if isinstance(raw, dict):
        description = raw.get("description")
        return str(description) if description else None
    return str(raw) if raw else None


def parse_food_detail(
    payload: dict[str, object], fallback_id: int | None = None
) -> FoodDetail:
    """Build a detail from either the full or the abridged FDC format."""
    nutrients: list[FoodNutrient] = []
    for raw in payload.get("foodNutrients") or []:
        info = raw.get("nutrient") or {}
        nutrient_id = raw.get("nutrientId") or info.get("id")
        value = raw.get("value")
        if value is None:
            value = raw.get("amount")
        nutrients.append(
            FoodNutrient(
                nutrient_id=int(nutrient_id) if nutrient_id is not None else None,
                name=str(raw.get("nutrientName") or info.get("name") or ""),
                unit=str(raw.get("unitName") or info.get("unitName") or ""),
                value=float(value) if value is not None else 0.0,
            )
        )

    portions: list[FoodPortion] = []
    for raw in payload.get("foodPortions") or []:
        measure_unit = raw.get("measureUnit") or {}
        gram_weight = raw.get("gramWeight")
        portions.append(
            FoodPortion(
                measure_unit_name=str(measure_unit.get("name") or ""),
                modifier=str(raw.get("modifier") or ""),
                gram_weight=float(gram_weight) if gram_weight is not None else None,
            )
        )

    return FoodDetail(
        id=int(payload.get("fdcId") or fallback_id or 0),
        description=str(payload.get("description") or ""),
        data_type=payload.get("dataType"),
        nutrients=nutrients,
        portions=portions,
    )
