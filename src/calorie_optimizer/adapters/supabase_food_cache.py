"""Supabase implementation of the FDC food detail cache."""

from dataclasses import dataclass

from supabase import Client

from calorie_optimizer.domain.nutrition import FoodDetail
from calorie_optimizer.services.food_cache import (
    FoodDetailCache,
    deserialize_detail,
    serialize_detail,
)


@dataclass
class SupabaseFoodCache(FoodDetailCache):
    """Supabase-backed detail cache using the usda_cache table."""

    client: Client
    table_name: str = "usda_cache"

    def get(self, fdc_id: int) -> FoodDetail | None:
        """Return the cached detail for an id, if present."""
        response = (
            self.client.table(self.table_name)
            .select("response_data")
            .eq("fdc_id", fdc_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return deserialize_detail(response.data[0]["response_data"])

    def put(self, fdc_id: int, detail: FoodDetail) -> None:
        """Upsert the detail stored for an id."""
        self.client.table(self.table_name).upsert(
            {"fdc_id": fdc_id, "response_data": serialize_detail(detail)},
            on_conflict="fdc_id",
        ).execute()
