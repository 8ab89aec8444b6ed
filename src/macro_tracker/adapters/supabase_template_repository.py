"""Supabase implementation for meal templates."""

from dataclasses import dataclass

from pydantic import TypeAdapter
from supabase import Client

from macro_tracker.adapters.supabase_errors import store_errors
from macro_tracker.domain.errors import PersistenceFailed
from macro_tracker.domain.templates import MealTemplate, TemplateFood
from macro_tracker.services.templates import TemplateRepository

_TABLE = "meal_templates"
_FOODS = TypeAdapter(list[TemplateFood])


@dataclass
class SupabaseTemplateRepository(TemplateRepository):
    """Supabase-backed repository for the ``meal_templates`` table."""

    client: Client

    def insert(self, payload: dict[str, object]) -> MealTemplate:
        """Create a template and return it."""
        with store_errors(f"insert {_TABLE}"):
            response = self.client.table(_TABLE).insert(_to_row(payload)).execute()
        if not response.data:
            raise PersistenceFailed("Failed to create meal template")
        return _parse_template(response.data[0])

    def update(self, template_id: int, payload: dict[str, object]) -> MealTemplate:
        """Update a template and return it."""
        with store_errors(f"update {_TABLE}"):
            response = (
                self.client.table(_TABLE)
                .update(_to_row(payload))
                .eq("id", template_id)
                .execute()
            )
        if not response.data:
            raise PersistenceFailed("Failed to update meal template")
        return _parse_template(response.data[0])

    def delete(self, template_id: int) -> None:
        """Delete a template."""
        with store_errors(f"delete {_TABLE}"):
            self.client.table(_TABLE).delete().eq("id", template_id).execute()

    def get(self, template_id: int) -> MealTemplate | None:
        """Return a template by id, if present."""
        with store_errors(f"select {_TABLE}"):
            response = (
                self.client.table(_TABLE)
                .select("*")
                .eq("id", template_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_template(response.data[0])

    def list_all(self) -> list[MealTemplate]:
        """Return all templates ordered by name."""
        with store_errors(f"select {_TABLE}"):
            response = self.client.table(_TABLE).select("*").order("name").execute()
        return [_parse_template(row) for row in response.data or []]


def _to_row(payload: dict[str, object]) -> dict[str, object]:
    row = {key: value for key, value in payload.items() if key != "foods"}
    if "foods" in payload:
        row["foods_json"] = _FOODS.dump_python(payload["foods"], mode="json")
    return row


def _parse_template(row: dict[str, object]) -> MealTemplate:
    return MealTemplate(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        description=str(row.get("description") or ""),
        category=row.get("category") or None,
        foods=_FOODS.validate_python(row.get("foods_json") or []),
    )
