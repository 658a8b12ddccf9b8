"""Error taxonomy for nutrition lookups and recipe optimization."""


class CalorieOptimizerError(Exception):
    """Base error for the calorie optimizer."""


class NotFoundError(CalorieOptimizerError):
    """Raised when a search yields no usable food."""


class UpstreamError(CalorieOptimizerError):
    """Raised when the nutrition API answers with a non-success status."""

    def __init__(self, status: int, body: str, *, context: str = "") -> None:
        self.status = status
        self.body = body
        self.context = context
        prefix = f"{context}: " if context else ""
        super().__init__(f"{prefix}upstream returned {status}: {body[:200]}")


class CompletionError(CalorieOptimizerError):
    """Base error for completion service failures."""


class RateLimitError(CompletionError):
    """Raised when the completion service throttles the caller."""


class CompletionTimeoutError(CompletionError):
    """Raised when the completion service does not answer in time."""


class MalformedOutputError(CompletionError):
    """Raised when completion output does not match the requested shape."""


class ExtractionError(CalorieOptimizerError):
    """Raised when a recipe cannot be extracted from free text."""


class NoUsableIngredients(CalorieOptimizerError):  # noqa: N818
    """Raised when a recipe has no ingredient lines left after normalization."""
