"""Meal template endpoints."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from macro_tracker.api.models import TemplateApply, TemplateCreate, TemplateUpdate
from macro_tracker.services.templates import compute_totals

if TYPE_CHECKING:
    from macro_tracker.containers import AppContainer
    from macro_tracker.domain.templates import MealTemplate

router = APIRouter(prefix="/api/templates", tags=["templates"])


def _with_totals(template: MealTemplate) -> dict[str, object]:
    return {"template": template, "totals": compute_totals(template.foods)}


@router.get("")
async def list_templates(
    request: Request, category: str | None = None
) -> dict[str, object]:
    """List templates, optionally filtered by category."""
    container: AppContainer = request.app.state.container
    service = container.template_service
    templates = (
        service.list_by_category(category)
        if category is not None
        else service.list_templates()
    )
    return {"templates": [_with_totals(template) for template in templates]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_template(body: TemplateCreate, request: Request) -> dict[str, object]:
    """Create a template from explicit foods or from a logged day."""
    container: AppContainer = request.app.state.container
    service = container.template_service
    if body.from_day is not None:
        template = service.create_from_entries(
            body.name,
            container.daily_log_service.list_day(body.from_day),
            description=body.description,
            category=body.category,
        )
    else:
        template = service.create(
            body.name, body.description, body.foods, category=body.category
        )
    return _with_totals(template)


@router.post("/migrate-categories")
async def migrate_categories(request: Request) -> dict[str, int]:
    """Move legacy description tags into the category field."""
    container: AppContainer = request.app.state.container
    return {"migrated": container.template_service.migrate_legacy_categories()}


@router.get("/{template_id}")
async def get_template(template_id: int, request: Request) -> dict[str, object]:
    """Return a template with its computed totals."""
    container: AppContainer = request.app.state.container
    template = container.template_service.get(template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return _with_totals(template)


@router.patch("/{template_id}")
async def update_template(
    template_id: int, body: TemplateUpdate, request: Request
) -> dict[str, object]:
    """Edit a template."""
    container: AppContainer = request.app.state.container
    patch = body.model_dump(exclude_unset=True)
    return _with_totals(container.template_service.update(template_id, patch))


@router.delete("/{template_id}")
async def delete_template(template_id: int, request: Request) -> dict[str, str]:
    """Delete a template."""
    container: AppContainer = request.app.state.container
    container.template_service.delete(template_id)
    return {"status": "ok"}


@router.post("/{template_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_template(
    template_id: int, body: TemplateApply, request: Request
) -> dict[str, object]:
    """Log every food of a template."""
    container: AppContainer = request.app.state.container
    entries = container.template_service.apply(
        template_id, body.day or date.today(), body.meal_type
    )
    return {"entries": entries}
