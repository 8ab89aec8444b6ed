"""Meal template service."""

import logging
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from typing import Protocol

from pydantic import TypeAdapter

from macro_tracker.domain.errors import ValidationRejected
from macro_tracker.domain.foods import DailyLogEntry, LoggedFood, MealType
from macro_tracker.domain.nutrition import MacroTotals
from macro_tracker.domain.templates import MealTemplate, TemplateFood
from macro_tracker.services.cache import Cache
from macro_tracker.services.catalog import FoodCatalogService
from macro_tracker.services.daily_log import DailyLogService
from macro_tracker.services.nutrition import scale_nutrition

MEAL_TEMPLATES_KEY = "meal-templates"
CATEGORY_TAG_RE = re.compile(r"\[Category:\s*([^\]]+)\]", re.IGNORECASE)

_TEMPLATES = TypeAdapter(list[MealTemplate])
_TEMPLATE = TypeAdapter(MealTemplate)
_FOODS = TypeAdapter(list[TemplateFood])
_PATCHABLE = {"name", "description", "category", "foods"}

_logger = logging.getLogger(__name__)


class TemplateRepository(Protocol):
    """Persistence interface for meal templates."""

    def insert(self, payload: dict[str, object]) -> MealTemplate:
        """Create a template and return it."""

    def update(self, template_id: int, payload: dict[str, object]) -> MealTemplate:
        """Update a template and return it."""

    def delete(self, template_id: int) -> None:
        """Delete a template."""

    def get(self, template_id: int) -> MealTemplate | None:
        """Return a template by id, if present."""

    def list_all(self) -> list[MealTemplate]:
        """Return all templates."""


@dataclass
class TemplateService:
    """Groups foods into reusable named templates."""

    repository: TemplateRepository
    cache: Cache
    catalog: FoodCatalogService
    daily_log: DailyLogService

    def create(
        self,
        name: str,
        description: str | None,
        foods: Iterable[TemplateFood | dict[str, object]],
        category: str | None = None,
    ) -> MealTemplate:
        """Create a template; a legacy tag in the description sets the category."""
        cleaned_name = name.strip()
        if not cleaned_name:
            raise ValidationRejected("name", name)
        tagged, clean_description = extract_category(description)
        resolved = normalize_category(category) if category is not None else tagged
        template = self.repository.insert(
            {
                "name": cleaned_name,
                "description": clean_description,
                "category": resolved,
                "foods": _FOODS.validate_python(list(foods)),
            }
        )
        self.cache.invalidate_prefix(MEAL_TEMPLATES_KEY)
        return template

    def create_from_entries(
        self,
        name: str,
        entries: Iterable[LoggedFood],
        description: str | None = None,
        category: str | None = None,
    ) -> MealTemplate:
        """Create a template from already-logged entries."""
        return self.create(
            name,
            description,
            [template_food_from_logged(logged) for logged in entries],
            category=category,
        )

    def update(self, template_id: int, patch: dict[str, object]) -> MealTemplate:
        """Apply a partial update to a template."""
        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValidationRejected("patch", sorted(unknown))
        payload: dict[str, object] = {}
        if "name" in patch:
            name = str(patch["name"] or "").strip()
            if not name:
                raise ValidationRejected("name", patch["name"])
            payload["name"] = name
        if "description" in patch:
            tagged, clean = extract_category(_as_text(patch["description"]))
            payload["description"] = clean
            if tagged is not None and "category" not in patch:
                payload["category"] = tagged
        if "category" in patch:
            payload["category"] = normalize_category(_as_text(patch["category"]))
        if "foods" in patch:
            payload["foods"] = _FOODS.validate_python(patch["foods"])
        template = self.repository.update(template_id, payload)
        self.cache.invalidate_prefix(MEAL_TEMPLATES_KEY)
        return template

    def delete(self, template_id: int) -> None:
        """Delete a template."""
        self.repository.delete(template_id)
        self.cache.invalidate_prefix(MEAL_TEMPLATES_KEY)

    def get(self, template_id: int) -> MealTemplate | None:
        """Return a template by id."""
        key = f"{MEAL_TEMPLATES_KEY}:detail:{template_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return _TEMPLATE.validate_python(cached)
        template = self.repository.get(template_id)
        if template is not None:
            template = read_legacy_category(template)
            self.cache.set(key, _TEMPLATE.dump_python(template, mode="json"))
        return template

    def list_templates(self) -> list[MealTemplate]:
        """Return all templates."""
        cached = self.cache.get(MEAL_TEMPLATES_KEY)
        if cached is not None:
            return _TEMPLATES.validate_python(cached)
        templates = [
            read_legacy_category(template) for template in self.repository.list_all()
        ]
        self.cache.set(MEAL_TEMPLATES_KEY, _TEMPLATES.dump_python(templates, mode="json"))
        return templates

    def list_by_category(self, category: str) -> list[MealTemplate]:
        """Return templates in a category, compared case-insensitively."""
        wanted = category.strip().lower()
        return [
            template
            for template in self.list_templates()
            if (template.category or "").lower() == wanted
        ]

    def apply(
        self, template_id: int, day: date, meal_type: MealType = MealType.BREAKFAST
    ) -> list[DailyLogEntry]:
        """Log every food of a template to a day."""
        template = self.get(template_id)
        if template is None:
            return []
        foods = {food.id: food for food in self.catalog.list_foods()}
        entries: list[DailyLogEntry] = []
        for item in template.foods:
            food = foods.get(item.food_id) if item.food_id is not None else None
            if food is None:
                _logger.warning(
                    "Skipping template food missing from catalog: %s", item.name
                )
                continue
            entries.append(
                self.daily_log.add_entry(day, food, item.serving_size, meal_type)
            )
        return entries

    def migrate_legacy_categories(self) -> int:
        """Move bracketed category tags out of descriptions into the column."""
        migrated = 0
        for template in self.repository.list_all():
            if template.category:
                continue
            category, clean = extract_category(template.description)
            if category is None:
                continue
            self.repository.update(
                template.id, {"category": category, "description": clean}
            )
            migrated += 1
        if migrated:
            self.cache.invalidate_prefix(MEAL_TEMPLATES_KEY)
            _logger.info("Migrated %s legacy template categories", migrated)
        return migrated


def extract_category(description: str | None) -> tuple[str | None, str]:
    """Return the tagged category and the description without the tag."""
    if not description:
        return None, ""
    match = CATEGORY_TAG_RE.search(description)
    category = match.group(1).strip() if match else None
    clean = CATEGORY_TAG_RE.sub("", description).strip()
    return category or None, clean


def read_legacy_category(template: MealTemplate) -> MealTemplate:
    """Expose a tagged description as the category of an unmigrated row."""
    if template.category:
        return template
    category, clean = extract_category(template.description)
    if category is None:
        return template
    return replace(template, category=category, description=clean)


def normalize_category(category: str | None) -> str | None:
    """Strip a category; blank becomes None and brackets are rejected."""
    if category is None:
        return None
    cleaned = category.strip()
    if not cleaned:
        return None
    if "[" in cleaned or "]" in cleaned:
        raise ValidationRejected("category", category)
    return cleaned


def compute_totals(foods: Iterable[TemplateFood]) -> MacroTotals:
    """Sum template nutrition; missing carbs or fat count as zero."""
    items = list(foods)
    return MacroTotals(
        protein=math.fsum(item.protein or 0.0 for item in items),
        carbs=math.fsum(item.carbs or 0.0 for item in items),
        fat=math.fsum(item.fat or 0.0 for item in items),
        calories=math.fsum(item.calories or 0.0 for item in items),
    )


def template_food_from_logged(logged: LoggedFood) -> TemplateFood:
    """Snapshot a logged entry with its scaled nutrition."""
    scaled = scale_nutrition(logged.food, logged.entry.serving_size)
    return TemplateFood(
        food_id=logged.food.id,
        name=logged.food.name,
        serving_size=logged.entry.serving_size,
        protein=scaled.protein,
        carbs=scaled.carbs,
        fat=scaled.fat,
        calories=scaled.calories,
        unit=logged.food.unit,
    )


def _as_text(value: object) -> str | None:
    return None if value is None else str(value)
