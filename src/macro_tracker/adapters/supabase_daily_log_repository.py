"""Supabase implementation of the daily log."""

from dataclasses import dataclass
from datetime import date

from supabase import Client

from macro_tracker.adapters.supabase_errors import store_errors
from macro_tracker.adapters.supabase_food_repository import parse_food
from macro_tracker.domain.errors import PersistenceFailed
from macro_tracker.domain.foods import DailyLogEntry, LoggedFood, MealType
from macro_tracker.services.daily_log import DailyLogRepository


@dataclass
class SupabaseDailyLogRepository(DailyLogRepository):
    """Supabase-backed repository for the ``dailydiet`` table."""

    client: Client

    def insert(
        self, day: date, food_id: int, serving_size: float, meal_type: MealType
    ) -> DailyLogEntry:
        """Create a log entry and return it."""
        with store_errors("insert dailydiet"):
            response = (
                self.client.table("dailydiet")
                .insert(
                    {
                        "date": day.isoformat(),
                        "food_id": food_id,
                        "quantity": serving_size,
                        "meal_type": meal_type.value,
                    }
                )
                .execute()
            )
        if not response.data:
            raise PersistenceFailed("Failed to create daily log entry")
        return _parse_entry(response.data[0])

    def list_by_day(self, day: date) -> list[LoggedFood]:
        """Return a day's entries joined with their foods."""
        with store_errors("select dailydiet"):
            response = (
                self.client.table("dailydiet")
                .select("*, foods(*)")
                .eq("date", day.isoformat())
                .order("created_at")
                .execute()
            )
        logged: list[LoggedFood] = []
        for row in response.data or []:
            food_row = row.get("foods")
            if not isinstance(food_row, dict):
                continue
            logged.append(LoggedFood(entry=_parse_entry(row), food=parse_food(food_row)))
        return logged

    def list_all(self) -> list[DailyLogEntry]:
        """Return every log entry ordered by date."""
        with store_errors("select dailydiet"):
            response = (
                self.client.table("dailydiet")
                .select("id, date, food_id, quantity, meal_type")
                .order("date")
                .execute()
            )
        return [
            _parse_entry(row)
            for row in response.data or []
            if row.get("food_id") is not None
        ]

    def delete(self, entry_id: int) -> None:
        """Delete a log entry."""
        with store_errors("delete dailydiet"):
            self.client.table("dailydiet").delete().eq("id", entry_id).execute()


def _parse_entry(row: dict[str, object]) -> DailyLogEntry:
    meal_raw = row.get("meal_type")
    try:
        meal_type = MealType(meal_raw) if meal_raw else MealType.SNACKS
    except ValueError:
        meal_type = MealType.SNACKS
    quantity = row.get("quantity")
    return DailyLogEntry(
        id=int(row["id"]),
        day=date.fromisoformat(str(row["date"])[:10]),
        food_id=int(row["food_id"]),
        serving_size=float(quantity) if quantity is not None else 1.0,
        meal_type=meal_type,
    )
