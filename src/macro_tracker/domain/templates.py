"""Domain models for meal templates."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TemplateFood:
    """A food entry stored inside a template."""

    food_id: int | None
    name: str
    serving_size: float
    protein: float
    carbs: float | None = None
    fat: float | None = None
    calories: float = 0.0
    unit: str = "serving"


@dataclass(frozen=True)
class MealTemplate:
    """A named, reusable bundle of foods."""

    id: int
    name: str
    description: str
    category: str | None = None
    foods: list[TemplateFood] = field(default_factory=list)
