"""Food resolution workflow endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, HTTPException, Request, status

from macro_tracker.api.models import ResolutionEdit, ResolutionOpen, ResolutionSubmit
from macro_tracker.domain.errors import MacroTrackerError
from macro_tracker.domain.resolution import ResolutionView

if TYPE_CHECKING:
    from macro_tracker.containers import AppContainer
    from macro_tracker.services.resolution import FoodResolutionWorkflow

router = APIRouter(prefix="/api/resolutions", tags=["resolutions"])


def _workflow(request: Request, resolution_id: UUID) -> FoodResolutionWorkflow:
    container: AppContainer = request.app.state.container
    workflow = container.resolutions.get(resolution_id)
    if workflow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return workflow


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_resolution(body: ResolutionOpen, request: Request) -> ResolutionView:
    """Open a workflow and submit the food name when one is given."""
    container: AppContainer = request.app.state.container
    workflow = container.resolutions.open()
    if body.text is None:
        return workflow.view()
    try:
        return await workflow.submit(
            body.text, body.serving_size, body.meal_type, body.day
        )
    except MacroTrackerError:
        container.resolutions.close(workflow.id)
        raise


@router.get("/{resolution_id}")
async def get_resolution(resolution_id: UUID, request: Request) -> ResolutionView:
    """Return the current state of a workflow."""
    return _workflow(request, resolution_id).view()


@router.get("/{resolution_id}/suggestions")
async def suggest(
    resolution_id: UUID, request: Request, q: str = "", limit: int = 10
) -> dict[str, list[str]]:
    """Autocomplete food names while the user types."""
    workflow = _workflow(request, resolution_id)
    return {"suggestions": workflow.search(q, limit=limit)}


@router.post("/{resolution_id}/submit")
async def submit(
    resolution_id: UUID, body: ResolutionSubmit, request: Request
) -> ResolutionView:
    """Resolve a typed food name."""
    workflow = _workflow(request, resolution_id)
    return await workflow.submit(
        body.text, body.serving_size, body.meal_type, body.day
    )


@router.patch("/{resolution_id}")
async def edit(
    resolution_id: UUID, body: ResolutionEdit, request: Request
) -> ResolutionView:
    """Override a field of the estimate under review."""
    workflow = _workflow(request, resolution_id)
    workflow.edit(body.field, body.value)
    return workflow.view()


@router.post("/{resolution_id}/confirm")
async def confirm(resolution_id: UUID, request: Request) -> ResolutionView:
    """Save the reviewed estimate and log it."""
    return await _workflow(request, resolution_id).confirm()


@router.post("/{resolution_id}/retry")
async def retry(resolution_id: UUID, request: Request) -> ResolutionView:
    """Re-run the step that failed."""
    return await _workflow(request, resolution_id).retry()


@router.post("/{resolution_id}/cancel")
async def cancel(resolution_id: UUID, request: Request) -> ResolutionView:
    """Discard the current resolution."""
    return _workflow(request, resolution_id).cancel()


@router.delete("/{resolution_id}")
async def close(resolution_id: UUID, request: Request) -> dict[str, str]:
    """Tear a workflow down."""
    container: AppContainer = request.app.state.container
    if not container.resolutions.close(resolution_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"status": "ok"}
