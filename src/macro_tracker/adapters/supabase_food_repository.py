"""Supabase implementation of the food catalog."""

from dataclasses import dataclass

from supabase import Client

from macro_tracker.adapters.supabase_errors import escape_like, store_errors
from macro_tracker.domain.errors import PersistenceFailed
from macro_tracker.domain.foods import FoodRecord
from macro_tracker.services.catalog import FoodRepository

_COLUMNS = {
    "name": "name",
    "protein_g": "protein",
    "carbs_g": "carbs",
    "fat_g": "fat",
    "calories": "calories",
    "serving_size": "serving_size",
    "unit": "unit",
}


@dataclass
class SupabaseFoodRepository(FoodRepository):
    """Supabase-backed repository for the ``foods`` table."""

    client: Client

    def find_by_name(self, name: str) -> FoodRecord | None:
        """Return the food whose name matches case-insensitively."""
        with store_errors("select foods"):
            response = (
                self.client.table("foods")
                .select("*")
                .ilike("name", escape_like(name))
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return parse_food(response.data[0])

    def insert(self, payload: dict[str, object]) -> FoodRecord:
        """Insert a food and return the created row."""
        name = str(payload.get("name", ""))
        with store_errors("insert foods", name=name):
            response = self.client.table("foods").insert(_to_row(payload)).execute()
        if not response.data:
            raise PersistenceFailed("Failed to create food entry")
        return parse_food(response.data[0])

    def update(self, food_id: int, payload: dict[str, object]) -> FoodRecord:
        """Update a food and return the updated row."""
        name = payload.get("name")
        with store_errors("update foods", name=str(name) if name else None):
            response = (
                self.client.table("foods")
                .update(_to_row(payload))
                .eq("id", food_id)
                .execute()
            )
        if not response.data:
            raise PersistenceFailed("Failed to update food entry")
        return parse_food(response.data[0])

    def list_all(self) -> list[FoodRecord]:
        """Return every food ordered by name."""
        with store_errors("select foods"):
            response = self.client.table("foods").select("*").order("name").execute()
        return [parse_food(row) for row in response.data or []]

    def delete_by_name(self, name: str) -> None:
        """Delete a food by case-insensitive name."""
        with store_errors("delete foods"):
            self.client.table("foods").delete().ilike(
                "name", escape_like(name)
            ).execute()


def _to_row(payload: dict[str, object]) -> dict[str, object]:
    return {_COLUMNS[key]: value for key, value in payload.items() if key in _COLUMNS}


def parse_food(row: dict[str, object]) -> FoodRecord:
    """Parse a ``foods`` row into a domain model."""
    return FoodRecord(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        protein_g=float(row.get("protein") or 0.0),
        carbs_g=float(row.get("carbs") or 0.0),
        fat_g=float(row.get("fat") or 0.0),
        calories=float(row.get("calories") or 0.0),
        serving_size=float(row.get("serving_size") or 1.0),
        unit=str(row.get("unit") or "serving"),
    )
