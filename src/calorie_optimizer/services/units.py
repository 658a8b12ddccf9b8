"""Unit to gram conversion for ingredient quantities."""

from calorie_optimizer.domain.nutrition import FoodDetail, GramSource

_WEIGHT_UNITS: dict[str, float] = {
    "g": 1.0,
    "gram": 1.0,
    "kg": 1000.0,
    "kilogram": 1000.0,
    "oz": 28.3495,
    "ounce": 28.3495,
    "lb": 453.592,
    "pound": 453.592,
}

_FALLBACK_GRAMS_PER_UNIT = 100.0


def normalize_unit(unit: str | None) -> str:
    """Trim, lowercase and strip a single trailing plural "s"."""
    normalized = (unit or "").strip().lower()
    if normalized.endswith("s"):
        normalized = normalized[:-1]
    return normalized


def weight_grams(quantity: float, unit: str | None) -> tuple[float, GramSource]:
    """Convert a pure weight unit, or return (0, unknown)."""
    factor = _WEIGHT_UNITS.get(normalize_unit(unit))
    if factor is None:
        return 0.0, GramSource.UNKNOWN
    return quantity * factor, GramSource.WEIGHT


def portion_grams(
    quantity: float, unit: str | None, food: FoodDetail
) -> tuple[float, GramSource]:
    """Convert using the food's own portion list, or return (0, unknown)."""
    normalized = normalize_unit(unit)
    if not normalized:
        return 0.0, GramSource.UNKNOWN
    for portion in food.portions:
        if normalized not in {
            normalize_unit(portion.measure_unit_name),
            normalize_unit(portion.modifier),
        }:
            continue
        if portion.gram_weight and portion.gram_weight > 0:
            return quantity * portion.gram_weight, GramSource.PORTION
    return 0.0, GramSource.UNKNOWN


def grams_for(
    quantity: float, unit: str | None, food: FoodDetail | None = None
) -> tuple[float, GramSource]:
    """Resolve a mass in grams, trying each conversion tier in order.

    Weight units come first, then the food's portions, then an empty unit is
    read as grams, and anything else counts as servings of 100 g. Never raises.
    """
    grams, source = weight_grams(quantity, unit)
    if source is GramSource.WEIGHT:
        return grams, source

    if food is not None:
        grams, source = portion_grams(quantity, unit, food)
        if source is GramSource.PORTION:
            return grams, source

    if not normalize_unit(unit):
        return quantity, GramSource.ASSUMED_GRAMS

    return quantity * _FALLBACK_GRAMS_PER_UNIT, GramSource.FALLBACK_100G
