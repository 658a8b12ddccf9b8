"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from calorie_optimizer.adapters.fdc_client import HttpxFdcClient
from calorie_optimizer.adapters.openai_completion_client import OpenAICompletionClient
from calorie_optimizer.adapters.sqlite_food_cache import SqliteFoodCache
from calorie_optimizer.adapters.supabase_food_cache import SupabaseFoodCache
from calorie_optimizer.config import Settings
from calorie_optimizer.services.calories import CalorieResolver
from calorie_optimizer.services.events import EventBus, JsonlEventWriter
from calorie_optimizer.services.food_cache import FoodDetailCache
from calorie_optimizer.services.nutrition import NutritionService
from calorie_optimizer.services.optimizer import OptimizerService
from calorie_optimizer.services.recipes import RecipeService
from calorie_optimizer.services.resilience import RetryPolicy
from calorie_optimizer.services.search import SearchAggregator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    events: EventBus
    nutrition_service: NutritionService
    search_aggregator: SearchAggregator
    calorie_resolver: CalorieResolver
    recipe_service: RecipeService
    optimizer_service: OptimizerService
    close_resources: Callable[[], Awaitable[None]]


def build_food_cache(settings: Settings) -> FoodDetailCache:
    """Create the detail cache selected by configuration."""
    backend = settings.food_cache_backend.lower()
    if backend == "sqlite":
        return SqliteFoodCache(settings.food_cache_path)
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase cache requires SUPABASE_URL and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseFoodCache(client)
    raise ValueError(f"Unknown food cache backend: {settings.food_cache_backend}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    events = EventBus(history_size=resolved_settings.event_history_size)
    if resolved_settings.event_log_path:
        events.subscribe(JsonlEventWriter(Path(resolved_settings.event_log_path)))
    retry_policy = RetryPolicy(
        max_attempts=resolved_settings.retry_max_attempts,
        base_delay_ms=resolved_settings.retry_base_delay_ms,
        max_delay_ms=resolved_settings.retry_max_delay_ms,
    )

    food_cache = build_food_cache(resolved_settings)
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    nutrition_service = NutritionService(
        fdc_client=fdc_client,
        cache=food_cache,
        retry_policy=retry_policy,
        events=events,
    )
    search_aggregator = SearchAggregator(nutrition_service)
    calorie_resolver = CalorieResolver(
        nutrition_service=nutrition_service,
        search_aggregator=search_aggregator,
    )
    openai_client = OpenAICompletionClient.create(resolved_settings.openai_api_key)
    recipe_service = RecipeService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        retry_policy=retry_policy,
        events=events,
    )
    optimizer_service = OptimizerService(
        recipe_service=recipe_service,
        calorie_resolver=calorie_resolver,
        max_iterations=resolved_settings.max_iterations,
        tolerance_ratio=resolved_settings.calorie_tolerance_ratio,
    )

    async def close_resources() -> None:
        await fdc_client.close()
        if isinstance(food_cache, SqliteFoodCache):
            food_cache.close()

    return AppContainer(
        settings=resolved_settings,
        events=events,
        nutrition_service=nutrition_service,
        search_aggregator=search_aggregator,
        calorie_resolver=calorie_resolver,
        recipe_service=recipe_service,
        optimizer_service=optimizer_service,
        close_resources=close_resources,
    )
