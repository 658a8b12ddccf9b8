"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from calorie_optimizer.api.request_models import (
    BatchCaloriesRequest,
    MultiSearchRequest,
    OptimizeRequest,
)
from calorie_optimizer.app_logging import configure_logging
from calorie_optimizer.config import parse_search_terms
from calorie_optimizer.containers import AppContainer
from calorie_optimizer.domain.errors import (
    CompletionError,
    ExtractionError,
    NoUsableIngredients,
    NotFoundError,
    UpstreamError,
)
from calorie_optimizer.domain.nutrition import (
    BatchCalories,
    CalorieResult,
    FoodCategory,
    IngredientCalories,
)
from calorie_optimizer.domain.optimization import OptimizationResult
from calorie_optimizer.domain.recipes import RawIngredient, normalize_line

_DEFAULT_QUANTITY = 100.0
_DEFAULT_UNIT = "g"


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(NotFoundError)
    async def not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(UpstreamError)
    async def upstream_failed(_request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error("Upstream failure: status=%s", exc.status)
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc), "upstream_status": exc.status},
        )

    @app.exception_handler(NoUsableIngredients)
    async def no_ingredients(
        _request: Request, exc: NoUsableIngredients
    ) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(ExtractionError)
    async def extraction_failed(
        _request: Request, exc: ExtractionError
    ) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(CompletionError)
    async def completion_failed(
        _request: Request, exc: CompletionError
    ) -> JSONResponse:
        logger.error("Completion failure: %s", exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/search")
    async def search(
        request: Request,
        query: str,
        limit: int = 10,
        category: str | None = FoodCategory.FOUNDATION.value,
    ) -> dict[str, object]:
        """Search FDC foods, Foundation data by default."""
        state_container: AppContainer = request.app.state.container
        if not query.strip():
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing search query")
        if limit <= 0:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Limit must be positive")
        hits = await state_container.nutrition_service.search(
            query, limit=limit, category=_parse_category(category)
        )
        return {"results": [asdict(hit) for hit in hits]}

    @app.post("/search/multi")
    async def multi_search(
        payload: MultiSearchRequest, request: Request
    ) -> dict[str, object]:
        """Search several query variants and merge unique hits."""
        state_container: AppContainer = request.app.state.container
        hits = await state_container.search_aggregator.multi_search(
            payload.queries,
            limit=payload.limit,
            category=_parse_category(payload.category),
        )
        return {"results": [asdict(hit) for hit in hits]}

    @app.get("/foods/{fdc_id}")
    async def food(fdc_id: int, request: Request) -> dict[str, object]:
        """Return the full detail record for an FDC id."""
        state_container: AppContainer = request.app.state.container
        try:
            detail = await state_container.nutrition_service.get_detail(fdc_id)
        except UpstreamError as exc:
            if exc.status == status.HTTP_404_NOT_FOUND:
                raise NotFoundError(f"No USDA food with id {fdc_id}.") from exc
            raise
        return detail.model_dump()

    @app.get("/food-details")
    async def food_details(name: str, request: Request) -> dict[str, object]:
        """Return the detail record of the top Foundation match for a name."""
        state_container: AppContainer = request.app.state.container
        if not name.strip():
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing food name")
        detail = await state_container.calorie_resolver.food_details(name)
        return detail.model_dump()

    @app.get("/calories")
    async def calories(  # noqa: PLR0913
        request: Request,
        quantity: float | None = None,
        unit: str | None = None,
        fdc_id: int | None = None,
        name: str | None = None,
        aliases: str | None = None,
    ) -> dict[str, object]:
        """Compute calories for a quantity of a food given by id or name."""
        state_container: AppContainer = request.app.state.container
        resolver = state_container.calorie_resolver
        trimmed_name = (name or "").strip()
        if not fdc_id and not trimmed_name:
            raise HTTPException(
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                "Missing fdc_id or ingredient name",
            )
        qty = quantity if quantity is not None else _DEFAULT_QUANTITY
        unit_str = (unit or "").strip() or _DEFAULT_UNIT

        variants = parse_search_terms(aliases)
        if fdc_id:
            result = await resolver.resolve_by_id(qty, unit_str, fdc_id)
        elif variants:
            result = await resolver.resolve_any(
                qty, unit_str, [trimmed_name, *variants]
            )
        else:
            result = await resolver.resolve(qty, unit_str, trimmed_name)

        return {
            "name": trimmed_name or result.meta.description,
            "quantity": qty,
            "unit": unit_str,
            **_calorie_payload(result),
        }

    @app.post("/calories/batch")
    async def calories_batch(
        payload: BatchCaloriesRequest, request: Request
    ) -> dict[str, object]:
        """Resolve many ingredient lines; one failure does not abort the rest."""
        state_container: AppContainer = request.app.state.container
        lines = []
        skipped = 0
        for ingredient in payload.ingredients:
            line = normalize_line(RawIngredient(**ingredient.model_dump()))
            if line is None:
                skipped += 1
                continue
            lines.append(line)
        batch = await state_container.calorie_resolver.resolve_many(lines)
        return {**_batch_payload(batch), "skipped": skipped}

    @app.post("/optimize")
    async def optimize(payload: OptimizeRequest, request: Request) -> dict[str, object]:
        """Adjust a recipe until its total calories reach the target."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.optimizer_service.optimize(
            payload.recipe_text, payload.target_calories
        )
        return _optimization_payload(result)

    return app


def _parse_category(raw: str | None) -> FoodCategory | None:
    """Map a category label to the enum; empty or "all" means no filter."""
    if raw is None or raw.strip().lower() in {"", "all"}:
        return None
    for category in FoodCategory:
        if raw.strip().lower() in {category.value.lower(), category.name.lower()}:
            return category
    raise HTTPException(
        status.HTTP_400_BAD_REQUEST, f"Unknown food category: {raw}"
    )


def _calorie_payload(result: CalorieResult) -> dict[str, object]:
    meta = asdict(result.meta)
    meta["gram_source"] = result.meta.gram_source.value
    return {"calories": round(result.calories, 2), "meta": meta}


def _ingredient_payload(item: IngredientCalories) -> dict[str, object]:
    payload: dict[str, object] = {
        "line": item.line.as_text(),
        "quantity": item.line.quantity,
        "unit": item.line.unit,
        "name": item.line.name,
        "ok": item.ok,
    }
    if item.result is not None:
        payload.update(_calorie_payload(item.result))
    if item.error is not None:
        payload["error"] = item.error
    return payload


def _batch_payload(batch: BatchCalories) -> dict[str, object]:
    return {
        "total_calories": round(batch.total_calories, 2),
        "items": [_ingredient_payload(item) for item in batch.items],
        "failed": len(batch.failures),
    }


def _optimization_payload(result: OptimizationResult) -> dict[str, object]:
    payload: dict[str, object] = {
        "recipe": result.recipe.to_payload(),
        "total_calories": round(result.total_calories, 2),
        "target_calories": result.target_calories,
        "changes": result.changes,
        "iterations": result.iterations,
        "status": result.status.value,
        "breakdown": [_ingredient_payload(item) for item in result.breakdown],
    }
    if result.warning:
        payload["warning"] = result.warning
    return payload
