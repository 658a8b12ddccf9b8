"""Recipe extraction and adjustment through a completion service."""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from calorie_optimizer.domain.errors import ExtractionError, MalformedOutputError
from calorie_optimizer.domain.recipes import (
    ExtractedRecipe,
    Recipe,
    RecipeAdjustment,
    RecipeRevision,
    normalize_recipe,
)
from calorie_optimizer.services.events import EventBus
from calorie_optimizer.services.resilience import RetryPolicy, call_with_retry

_INGREDIENTS_SCHEMA: dict[str, object] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "quantity": {"type": "number"},
            "unit": {"type": "string"},
            "name": {"type": "string"},
        },
        "required": ["quantity", "unit", "name"],
        "additionalProperties": False,
    },
}

RECIPE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "ingredients": _INGREDIENTS_SCHEMA,
    },
    "required": ["title", "ingredients"],
    "additionalProperties": False,
}

ADJUSTMENT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "ingredients": _INGREDIENTS_SCHEMA,
        "changes": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["title", "ingredients", "changes"],
    "additionalProperties": False,
}

_ModelT = TypeVar("_ModelT", bound=BaseModel)
_T = TypeVar("_T")


class CompletionClient(Protocol):
    """Interface for schema-constrained text completion."""

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
        """Return structured output matching the schema."""


@dataclass
class RecipeService:
    """Prepares recipe prompts and validates what comes back."""

    client: CompletionClient
    model: str
    reasoning_effort: str | None
    store: bool
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    events: EventBus = field(default_factory=EventBus)

    async def extract(self, recipe_text: str) -> Recipe:
        """Turn free recipe text into a title and normalized ingredient lines."""
        prompt = (
            "Convert the following recipe into JSON with a `title` and an "
            "`ingredients` array. Each ingredient has a numeric `quantity`, a "
            "`unit` (empty string when there is none) and a `name`. Convert "
            "fractions to decimals, e.g. 1/2 -> 0.5 and 1 ½ -> 1.5. "
            "Ignore instructions and any non-ingredient text.\n\n"
            f"Recipe:\n{recipe_text}"
        )

        def parse(raw: object) -> Recipe:
            return normalize_recipe(_validate(ExtractedRecipe, raw))

        try:
            return await self._complete(prompt, RECIPE_SCHEMA, "recipe_extract", parse)
        except MalformedOutputError as exc:
            raise ExtractionError(f"Failed to extract recipe: {exc}") from exc

    async def adjust(
        self, recipe: Recipe, calories_to_cut: float, prior_changes: list[str]
    ) -> RecipeRevision:
        """Ask for a revised recipe that removes the given number of calories."""
        prompt = (
            "You are a culinary assistant that reduces calories while preserving "
            "dish logic. Given the recipe JSON and the calorie reduction needed, "
            "propose a revised recipe. Return `title`, `ingredients` and "
            "`changes` (short strings describing each substitution or quantity "
            "reduction). Keep the number of ingredients similar and avoid "
            "removing core components.\n\n"
            f"Calorie reduction needed: {calories_to_cut:.0f} calories.\n\n"
            f"Current recipe JSON:\n{json.dumps(recipe.to_payload(), indent=2)}\n\n"
            f"Changes already made:\n{json.dumps(prior_changes, indent=2)}"
        )

        def parse(raw: object) -> RecipeRevision:
            adjustment = _validate(RecipeAdjustment, raw)
            revised = normalize_recipe(adjustment, fallback_title=recipe.title)
            if not revised.ingredients:
                raise MalformedOutputError("Adjusted recipe has no usable ingredients")
            changes = [str(change).strip() for change in adjustment.changes]
            return RecipeRevision(
                recipe=revised, changes=[change for change in changes if change]
            )

        return await self._complete(prompt, ADJUSTMENT_SCHEMA, "recipe_adjust", parse)

    async def _complete(
        self,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        parse: Callable[[object], _T],
    ) -> _T:
        """Request a completion and parse it, retrying transient failures.

        Parsing happens inside each attempt so output that fails validation is
        retried like any other malformed response.
        """

        async def attempt() -> _T:
            raw = await self.client.complete(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=prompt,
                schema=schema,
                schema_name=schema_name,
            )
            return parse(raw)

        self.events.emit("tool_invocation", tool="completion", schema=schema_name)
        return await call_with_retry(
            attempt,
            action=f"completion:{schema_name}",
            policy=self.retry_policy,
            events=self.events,
        )


def _validate(model_type: type[_ModelT], raw: object) -> _ModelT:
    """Validate completion output, classifying failures as malformed output."""
    try:
        return model_type.model_validate(raw)
    except ValidationError as exc:
        raise MalformedOutputError(
            f"Completion output does not match {model_type.__name__}: {exc}"
        ) from exc
