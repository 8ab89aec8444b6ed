"""Domain models for the food resolution workflow."""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from uuid import UUID

from macro_tracker.domain.foods import DailyLogEntry, FoodRecord, MealType


class ResolutionState(StrEnum):
    """States of a single food resolution."""

    IDLE = "IDLE"
    SEARCHING = "SEARCHING"
    KNOWN_FOOD = "KNOWN_FOOD"
    UNKNOWN_FOOD = "UNKNOWN_FOOD"
    ESTIMATING_NUTRITION = "ESTIMATING_NUTRITION"
    REVIEWING_ESTIMATE = "REVIEWING_ESTIMATE"
    COMMITTING = "COMMITTING"
    DONE = "DONE"
    FAILED = "FAILED"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class ReviewForm:
    """Editable estimate shown to the user before saving."""

    food_name: str
    protein: float
    calories: float
    carbs: float
    fat: float
    serving_size: float
    unit: str
    defaulted_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolutionRequest:
    """What the user asked to log."""

    text: str
    serving_size: float = 1.0
    meal_type: MealType = MealType.SNACKS
    day: date | None = None


@dataclass(frozen=True)
class ResolutionView:
    """Read-only view of a workflow for callers."""

    id: UUID
    state: ResolutionState
    request: ResolutionRequest | None
    suggestions: list[str] = field(default_factory=list)
    form: ReviewForm | None = None
    food: FoodRecord | None = None
    entry: DailyLogEntry | None = None
    error: str | None = None
    error_category: str | None = None
    macros_consistent: bool | None = None
