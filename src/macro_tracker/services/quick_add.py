"""Quick re-logging of frequently used foods."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from macro_tracker.domain.errors import MacroTrackerError
from macro_tracker.domain.foods import DailyLogEntry, MealType
from macro_tracker.services.catalog import FoodCatalogService
from macro_tracker.services.daily_log import DailyLogService
from macro_tracker.services.usage import UsageTracker

_logger = logging.getLogger(__name__)


@dataclass
class QuickAddService:
    """Logs a known food straight from the frequent foods list."""

    catalog: FoodCatalogService
    daily_log: DailyLogService
    usage: UsageTracker
    today: Callable[[], date] = date.today

    def log_frequent(
        self,
        food_id: int,
        serving_size: float | None = None,
        meal_type: MealType = MealType.SNACKS,
        day: date | None = None,
    ) -> DailyLogEntry | None:
        """Log a food by id; returns None when the food no longer exists.

        Without an explicit serving size the last confirmed one is reused.
        """
        food = next(
            (item for item in self.catalog.list_foods() if item.id == food_id), None
        )
        if food is None:
            return None
        if serving_size is None:
            serving_size = self.usage.default_serving_size(food.id)
        entry = self.daily_log.add_entry(
            day or self.today(), food, serving_size, meal_type
        )
        try:
            self.usage.track(food.id, food.name, serving_size)
        except MacroTrackerError:
            _logger.exception("Usage tracking failed for food %s", food.id)
        return entry
