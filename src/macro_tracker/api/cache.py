"""Cache maintenance endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request

if TYPE_CHECKING:
    from macro_tracker.containers import AppContainer

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("")
async def cache_status(request: Request) -> dict[str, object]:
    """Report cache size and last refresh."""
    container: AppContainer = request.app.state.container
    return {
        "size_bytes": container.cache.size(),
        "entries": container.cache.entry_count(),
        "last_refreshed_at": container.cache.last_refreshed_at(),
    }


@router.post("/refresh")
async def refresh_cache(request: Request) -> dict[str, object]:
    """Drop cached queries and reload the catalog snapshot."""
    container: AppContainer = request.app.state.container
    refreshed_at = container.cache.refresh_all()
    foods = container.catalog_service.refresh_snapshot()
    return {"last_refreshed_at": refreshed_at, "foods": foods}


@router.delete("")
async def clear_cache(request: Request) -> dict[str, object]:
    """Discard every cached query and the refresh stamp."""
    container: AppContainer = request.app.state.container
    container.cache.clear()
    return {"size_bytes": container.cache.size()}
