"""Feedback loop that trims a recipe toward a calorie target."""

import logging
from dataclasses import dataclass

from calorie_optimizer.domain.errors import NoUsableIngredients, NotFoundError
from calorie_optimizer.domain.optimization import (
    ConvergenceState,
    OptimizationResult,
    OptimizationStatus,
)
from calorie_optimizer.services.calories import CalorieResolver
from calorie_optimizer.services.recipes import RecipeService

MAX_ITERATIONS = 8
CALORIE_TOLERANCE_RATIO = 0.05

EXHAUSTED_WARNING = "Max iterations reached before hitting target."
UNRESOLVED_WARNING = "{count} ingredient(s) could not be resolved and count as 0."

_logger = logging.getLogger(__name__)


@dataclass
class OptimizerService:
    """Drives a recipe's total energy toward a target.

    Each round evaluates the current ingredient lines and, while the total is
    above the target by more than the tolerance, asks for an adjustment sized
    by the latest overshoot. The loop only ever reduces: a total below the
    target ends the run as it stands. Foods with no FDC match count as 0 kcal
    and are called out in the warning; upstream failures abort the run.
    """

    recipe_service: RecipeService
    calorie_resolver: CalorieResolver
    max_iterations: int = MAX_ITERATIONS
    tolerance_ratio: float = CALORIE_TOLERANCE_RATIO

    async def optimize(
        self, recipe_text: str, target_calories: float
    ) -> OptimizationResult:
        """Extract a recipe from text and adjust it toward the target."""
        if target_calories <= 0:
            raise ValueError("Target calories must be positive")

        recipe = await self.recipe_service.extract(recipe_text)
        if not recipe.ingredients:
            raise NoUsableIngredients("No usable ingredients after normalization.")

        state = ConvergenceState(recipe=recipe)
        while True:
            batch = await self.calorie_resolver.resolve_many(
                state.recipe.ingredients, isolate=(NotFoundError,)
            )
            state.last_total = batch.total_calories
            state.breakdown = batch.items
            _logger.info(
                "Optimize iteration %s: total=%.1f target=%.1f unresolved=%s",
                state.iteration,
                state.last_total,
                target_calories,
                len(batch.failures),
            )

            if self.within_tolerance(state.last_total, target_calories):
                return _result(state, target_calories, OptimizationStatus.CONVERGED)
            if state.last_total < target_calories:
                return _result(state, target_calories, OptimizationStatus.BELOW_TARGET)
            if state.iteration >= self.max_iterations:
                _logger.warning(
                    "Optimize stopped after %s adjustments at %.1f kcal",
                    state.iteration,
                    state.last_total,
                )
                return _result(
                    state,
                    target_calories,
                    OptimizationStatus.EXHAUSTED,
                    warning=EXHAUSTED_WARNING,
                )

            delta = state.last_total - target_calories
            revision = await self.recipe_service.adjust(
                state.recipe, delta, list(state.change_log)
            )
            state.recipe = revision.recipe
            state.change_log.extend(revision.changes)
            state.iteration += 1

    def within_tolerance(self, total: float, target: float) -> bool:
        """Return True when the total sits inside the tolerance band."""
        return abs(total - target) <= target * self.tolerance_ratio


def _result(
    state: ConvergenceState,
    target_calories: float,
    status: OptimizationStatus,
    warning: str | None = None,
) -> OptimizationResult:
    warnings = [warning] if warning else []
    unresolved = sum(1 for item in state.breakdown if not item.ok)
    if unresolved:
        warnings.append(UNRESOLVED_WARNING.format(count=unresolved))
    return OptimizationResult(
        recipe=state.recipe,
        total_calories=state.last_total,
        target_calories=target_calories,
        changes=list(state.change_log),
        iterations=state.iteration,
        status=status,
        breakdown=list(state.breakdown),
        warning=" ".join(warnings) or None,
    )
