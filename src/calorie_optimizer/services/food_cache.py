"""Persistent cache for FDC food details."""

from typing import Protocol

from calorie_optimizer.domain.nutrition import FoodDetail


class FoodDetailCache(Protocol):
    """Insert-or-replace store keyed by FDC id.

    Entries never expire: a food record published upstream is treated as a
    fixed fact, so a hit is served for the life of the store.
    """

    def get(self, fdc_id: int) -> FoodDetail | None:
        """Return the cached detail for an id, if present."""

    def put(self, fdc_id: int, detail: FoodDetail) -> None:
        """Store a detail, replacing any prior value for the id."""


def serialize_detail(detail: FoodDetail) -> str:
    """Serialize a detail for storage."""
    return detail.model_dump_json()


def deserialize_detail(raw: str | dict[str, object]) -> FoodDetail:
    """Rebuild a detail from its stored form."""
    if isinstance(raw, str):
        return FoodDetail.model_validate_json(raw)
    return FoodDetail.model_validate(raw)
