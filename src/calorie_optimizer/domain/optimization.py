"""Models describing a recipe optimization run."""

from dataclasses import dataclass, field
from enum import Enum

from calorie_optimizer.domain.nutrition import IngredientCalories
from calorie_optimizer.domain.recipes import Recipe


class OptimizationStatus(str, Enum):
    """Terminal state of the convergence loop."""

    CONVERGED = "converged"
    BELOW_TARGET = "below_target"
    EXHAUSTED = "exhausted"


@dataclass
class ConvergenceState:
    """Mutable state owned by a single optimization run."""

    recipe: Recipe
    change_log: list[str] = field(default_factory=list)
    iteration: int = 0
    last_total: float = 0.0
    breakdown: list[IngredientCalories] = field(default_factory=list)


@dataclass(frozen=True)
class OptimizationResult:
    """Best-effort outcome of driving a recipe toward a calorie target."""

    recipe: Recipe
    total_calories: float
    target_calories: float
    changes: list[str]
    iterations: int
    status: OptimizationStatus
    breakdown: list[IngredientCalories]
    warning: str | None = None
