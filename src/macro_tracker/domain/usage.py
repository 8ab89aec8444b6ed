"""Domain models for food usage tracking."""

from dataclasses import dataclass
from datetime import datetime

from macro_tracker.domain.foods import FoodRecord


@dataclass(frozen=True)
class UsageRecord:
    """How often and how recently a food was logged."""

    food_id: int
    name: str
    default_serving_size: float
    use_count: int
    last_used_at: datetime


@dataclass(frozen=True)
class FrequentFood:
    """A catalog food with its usage statistics."""

    food: FoodRecord
    usage: UsageRecord
