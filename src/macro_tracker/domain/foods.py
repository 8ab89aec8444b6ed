"""Domain models for the food catalog and daily log."""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum


class MealType(StrEnum):
    """Meal a daily log entry belongs to."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACKS = "Snacks"


@dataclass(frozen=True)
class FoodRecord:
    """Nutrition facts for one serving of a catalog food."""

    id: int
    name: str
    protein_g: float
    carbs_g: float
    fat_g: float
    calories: float
    serving_size: float
    unit: str


@dataclass(frozen=True)
class DailyLogEntry:
    """A food committed to a day's log."""

    id: int
    day: date
    food_id: int
    serving_size: float
    meal_type: MealType


@dataclass(frozen=True)
class LoggedFood:
    """Daily log entry joined with its food record."""

    entry: DailyLogEntry
    food: FoodRecord
