"""Concurrent multi-query search with de-duplication."""

import asyncio
from dataclasses import dataclass

from calorie_optimizer.domain.nutrition import FoodCategory, FoodSearchHit
from calorie_optimizer.services.nutrition import NutritionService


@dataclass
class SearchAggregator:
    """Runs several query variants at once and merges their hits.

    The join is all-or-nothing: if any single query fails, the whole call
    fails with that error. Per-ingredient batches in CalorieResolver use the
    opposite, continue-on-error policy.
    """

    nutrition_service: NutritionService

    async def multi_search(
        self,
        queries: list[str],
        limit: int = 10,
        category: FoodCategory | None = None,
    ) -> list[FoodSearchHit]:
        """Search every query concurrently and de-duplicate hits by id."""
        cleaned = [query.strip() for query in queries if query.strip()]
        if not cleaned:
            return []

        per_query = await asyncio.gather(
            *(
                self.nutrition_service.search(query, limit=limit, category=category)
                for query in cleaned
            )
        )

        seen: set[int] = set()
        merged: list[FoodSearchHit] = []
        for hits in per_query:
            for hit in hits:
                if hit.id in seen:
                    continue
                seen.add(hit.id)
                merged.append(hit)
        return merged
