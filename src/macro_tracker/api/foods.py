"""Catalog, daily log and frequent food endpoints."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from macro_tracker.api.models import FoodCreate, FoodUpdate, QuickAddRequest
from macro_tracker.services.nutrition import macro_percentages, scale_nutrition

if TYPE_CHECKING:
    from macro_tracker.containers import AppContainer

router = APIRouter(prefix="/api", tags=["foods"])


@router.get("/foods")
async def list_foods(
    request: Request, q: str | None = None, limit: int = 10
) -> dict[str, object]:
    """List catalog foods, or autocomplete names when ``q`` is given."""
    container: AppContainer = request.app.state.container
    if q is not None:
        return {"suggestions": container.catalog_service.search(q, limit=limit)}
    return {"foods": container.catalog_service.list_foods()}


@router.post("/foods", status_code=status.HTTP_201_CREATED)
async def create_food(body: FoodCreate, request: Request) -> dict[str, object]:
    """Create a catalog food."""
    container: AppContainer = request.app.state.container
    return {"food": container.catalog_service.create(body.model_dump())}


@router.patch("/foods/{food_id}")
async def update_food(
    food_id: int, body: FoodUpdate, request: Request
) -> dict[str, object]:
    """Edit a catalog food."""
    container: AppContainer = request.app.state.container
    patch = body.model_dump(exclude_unset=True)
    return {"food": container.catalog_service.update(food_id, patch)}


@router.delete("/foods/{name}")
async def delete_food(name: str, request: Request) -> dict[str, str]:
    """Delete a catalog food by name."""
    container: AppContainer = request.app.state.container
    container.catalog_service.delete(name)
    return {"status": "ok"}


@router.get("/daily-log/{day}")
async def daily_log(day: date, request: Request) -> dict[str, object]:
    """Return a day's entries with scaled nutrition and totals."""
    container: AppContainer = request.app.state.container
    entries = [
        {
            "entry": logged.entry,
            "food": logged.food,
            "nutrition": scale_nutrition(logged.food, logged.entry.serving_size),
        }
        for logged in container.daily_log_service.list_day(day)
    ]
    totals = container.daily_log_service.day_totals(day)
    return {
        "entries": entries,
        "totals": totals,
        "percentages": macro_percentages(totals.protein, totals.carbs, totals.fat),
    }


@router.delete("/daily-log/{day}/{entry_id}")
async def delete_log_entry(day: date, entry_id: int, request: Request) -> dict[str, str]:
    """Remove an entry from a day's log."""
    container: AppContainer = request.app.state.container
    container.daily_log_service.delete_entry(entry_id, day)
    return {"status": "ok"}


@router.get("/frequent-foods")
async def frequent_foods(
    request: Request, limit: int | None = None
) -> dict[str, object]:
    """Return foods ranked for quick re-logging."""
    container: AppContainer = request.app.state.container
    resolved_limit = (
        limit if limit is not None else container.settings.frequent_foods_limit
    )
    return {"foods": container.usage_tracker.get_frequent(resolved_limit)}


@router.post("/frequent-foods/rebuild")
async def rebuild_frequent_foods(request: Request) -> dict[str, int]:
    """Rebuild usage statistics from the daily log history."""
    container: AppContainer = request.app.state.container
    rebuilt = container.usage_tracker.rebuild_from_log(
        container.daily_log_service.history()
    )
    return {"rebuilt": rebuilt}


@router.post("/frequent-foods/{food_id}/log", status_code=status.HTTP_201_CREATED)
async def log_frequent_food(
    food_id: int, body: QuickAddRequest, request: Request
) -> dict[str, object]:
    """Log a frequent food in one step."""
    container: AppContainer = request.app.state.container
    entry = container.quick_add_service.log_frequent(
        food_id, body.serving_size, body.meal_type, body.day
    )
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"entry": entry}
