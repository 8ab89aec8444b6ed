"""Daily food log service."""

from dataclasses import dataclass
from datetime import date
from typing import Protocol

from pydantic import TypeAdapter

from macro_tracker.domain.errors import ValidationRejected
from macro_tracker.domain.foods import DailyLogEntry, FoodRecord, LoggedFood, MealType
from macro_tracker.domain.nutrition import MacroTotals
from macro_tracker.services.cache import Cache
from macro_tracker.services.nutrition import scale_nutrition

DAILY_ENTRIES_KEY = "daily-entries"

_LOGGED = TypeAdapter(list[LoggedFood])


def daily_entries_key(day: date) -> str:
    """Return the cache key for a day's log."""
    return f"{DAILY_ENTRIES_KEY}:{day.isoformat()}"


class DailyLogRepository(Protocol):
    """Persistence interface for daily log entries."""

    def insert(
        self, day: date, food_id: int, serving_size: float, meal_type: MealType
    ) -> DailyLogEntry:
        """Create a log entry and return it."""

    def list_by_day(self, day: date) -> list[LoggedFood]:
        """Return a day's entries joined with their foods."""

    def list_all(self) -> list[DailyLogEntry]:
        """Return every log entry."""

    def delete(self, entry_id: int) -> None:
        """Delete a log entry."""


@dataclass
class DailyLogService:
    """Writes and reads the daily log, keeping the day cache consistent."""

    repository: DailyLogRepository
    cache: Cache

    def add_entry(
        self,
        day: date,
        food: FoodRecord,
        serving_size: float,
        meal_type: MealType = MealType.SNACKS,
    ) -> DailyLogEntry:
        """Commit a food to a day's log."""
        if serving_size < 0:
            raise ValidationRejected("serving_size", serving_size)
        entry = self.repository.insert(day, food.id, serving_size, meal_type)
        self.cache.invalidate(daily_entries_key(entry.day))
        return entry

    def list_day(self, day: date) -> list[LoggedFood]:
        """Return a day's entries, served from cache when fresh."""
        key = daily_entries_key(day)
        cached = self.cache.get(key)
        if cached is not None:
            return _LOGGED.validate_python(cached)
        entries = self.repository.list_by_day(day)
        self.cache.set(key, _LOGGED.dump_python(entries, mode="json"))
        return entries

    def delete_entry(self, entry_id: int, day: date) -> None:
        """Delete an entry and invalidate its day."""
        self.repository.delete(entry_id)
        self.cache.invalidate(daily_entries_key(day))

    def history(self) -> list[DailyLogEntry]:
        """Return every entry ever logged."""
        return self.repository.list_all()

    def day_totals(self, day: date) -> MacroTotals:
        """Return the scaled macro totals for a day."""
        protein = carbs = fat = calories = 0.0
        for logged in self.list_day(day):
            scaled = scale_nutrition(logged.food, logged.entry.serving_size)
            protein += scaled.protein
            carbs += scaled.carbs
            fat += scaled.fat
            calories += scaled.calories
        return MacroTotals(protein=protein, carbs=carbs, fat=fat, calories=calories)
