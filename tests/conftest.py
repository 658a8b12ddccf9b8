"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from calorie_optimizer.adapters.fdc_client import FdcClient
from calorie_optimizer.config import Settings
from calorie_optimizer.containers import AppContainer
from calorie_optimizer.domain.errors import MalformedOutputError, UpstreamError
from calorie_optimizer.domain.nutrition import FoodDetail
from calorie_optimizer.services.calories import CalorieResolver
from calorie_optimizer.services.events import EventBus
from calorie_optimizer.services.food_cache import FoodDetailCache
from calorie_optimizer.services.nutrition import NutritionService
from calorie_optimizer.services.optimizer import OptimizerService
from calorie_optimizer.services.recipes import CompletionClient, RecipeService
from calorie_optimizer.services.resilience import RetryPolicy
from calorie_optimizer.services.search import SearchAggregator

NO_RETRY = RetryPolicy(max_attempts=1)


def search_hit(fdc_id: int, description: str, data_type: str = "Foundation") -> dict:
    return {
        "fdcId": fdc_id,
        "description": description,
        "dataType": data_type,
        "foodCategory": "Fruits and Fruit Juices",
    }


def food_payload(
    fdc_id: int,
    description: str,
    kcal: float | None,
    portions: list[dict] | None = None,
) -> dict:
    nutrients: list[dict] = [
        {
            "nutrient": {"id": 1003, "name": "Protein", "unitName": "g"},
            "amount": 1.0,
        }
    ]
    if kcal is not None:
        nutrients.append(
            {
                "nutrient": {"id": 1008, "name": "Energy", "unitName": "kcal"},
                "amount": kcal,
            }
        )
    return {
        "fdcId": fdc_id,
        "description": description,
        "dataType": "Foundation",
        "foodNutrients": nutrients,
        "foodPortions": portions or [],
    }


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    search_results: dict[str, list[dict]] = field(default_factory=dict)
    foods: dict[int, dict] = field(default_factory=dict)
    failing_queries: dict[str, int] = field(default_factory=dict)
    search_calls: list[tuple[str, int, str | None]] = field(default_factory=list)
    food_calls: list[int] = field(default_factory=list)

    def add_food(self, query: str, payload: dict) -> None:
        self.foods[payload["fdcId"]] = payload
        self.search_results.setdefault(query, []).append(
            search_hit(payload["fdcId"], payload["description"])
        )

    async def search_foods(
        self, query: str, page_size: int = 10, data_type: str | None = None
    ) -> dict[str, object]:
        self.search_calls.append((query, page_size, data_type))
        if query in self.failing_queries:
            raise UpstreamError(self.failing_queries[query], "search failed")
        return {"foods": self.search_results.get(query, [])[:page_size]}

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls.append(fdc_id)
        if fdc_id not in self.foods:
            raise UpstreamError(404, "food not found")
        return self.foods[fdc_id]


@dataclass
class InMemoryFoodCache(FoodDetailCache):
    """Dictionary-backed detail cache for tests."""

    entries: dict[int, FoodDetail] = field(default_factory=dict)

    def get(self, fdc_id: int) -> FoodDetail | None:
        return self.entries.get(fdc_id)

    def put(self, fdc_id: int, detail: FoodDetail) -> None:
        self.entries[fdc_id] = detail


@dataclass
class FakeCompletionClient(CompletionClient):
    """Replays scripted outputs per schema name; the last one repeats."""

    responses: dict[str, list[object]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
    ) -> dict[str, object]:
        self.calls.append((schema_name, prompt))
        queue = self.responses.get(schema_name) or []
        if not queue:
            raise MalformedOutputError(f"No scripted output for {schema_name}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def count(self, schema_name: str) -> int:
        return sum(1 for name, _ in self.calls if name == schema_name)


def recipe_payload(title: str, *lines: tuple[float, str, str]) -> dict[str, object]:
    return {
        "title": title,
        "ingredients": [
            {"quantity": quantity, "unit": unit, "name": name}
            for quantity, unit, name in lines
        ],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        fdc_api_key="fdc-key",
        openai_api_key="openai-key",
        food_cache_backend="sqlite",
        food_cache_path=":memory:",
    )


@pytest.fixture
def fdc_client() -> FakeFdcClient:
    client = FakeFdcClient()
    client.add_food("apple", food_payload(1750340, "Apples, fuji, with skin, raw", 52))
    client.add_food("sugar", food_payload(746784, "Sugars, granulated", 400))
    client.add_food("butter", food_payload(789828, "Butter, stick, unsalted", 717))
    return client


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def nutrition_service(fdc_client: FakeFdcClient, events: EventBus) -> NutritionService:
    return NutritionService(
        fdc_client=fdc_client,
        cache=InMemoryFoodCache(),
        retry_policy=NO_RETRY,
        events=events,
    )


@pytest.fixture
def calorie_resolver(nutrition_service: NutritionService) -> CalorieResolver:
    return CalorieResolver(
        nutrition_service=nutrition_service,
        search_aggregator=SearchAggregator(nutrition_service),
    )


@pytest.fixture
def recipe_service(
    completion_client: FakeCompletionClient, events: EventBus
) -> RecipeService:
    return RecipeService(
        client=completion_client,
        model="gpt-5.2",
        reasoning_effort=None,
        store=False,
        retry_policy=NO_RETRY,
        events=events,
    )


@pytest.fixture
def container(
    settings: Settings,
    events: EventBus,
    nutrition_service: NutritionService,
    calorie_resolver: CalorieResolver,
    recipe_service: RecipeService,
) -> AppContainer:
    optimizer_service = OptimizerService(
        recipe_service=recipe_service,
        calorie_resolver=calorie_resolver,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        events=events,
        nutrition_service=nutrition_service,
        search_aggregator=calorie_resolver.search_aggregator,
        calorie_resolver=calorie_resolver,
        recipe_service=recipe_service,
        optimizer_service=optimizer_service,
        close_resources=close_resources,
    )
