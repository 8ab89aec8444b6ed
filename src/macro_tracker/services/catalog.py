"""Food catalog service."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import TypeAdapter

from macro_tracker.domain.errors import DuplicateName, ValidationRejected
from macro_tracker.domain.foods import FoodRecord
from macro_tracker.services.cache import Cache

FOOD_DATABASE_KEY = "food-database"

_FOODS = TypeAdapter(list[FoodRecord])
_NUMERIC_FIELDS = ("protein_g", "carbs_g", "fat_g", "calories", "serving_size")

_logger = logging.getLogger(__name__)


class FoodRepository(Protocol):
    """Persistence interface for catalog foods."""

    def find_by_name(self, name: str) -> FoodRecord | None:
        """Return the food whose name matches case-insensitively."""

    def insert(self, payload: dict[str, object]) -> FoodRecord:
        """Insert a food and return it with its id.

        Raises ``DuplicateName`` when the name is already taken.
        """

    def update(self, food_id: int, payload: dict[str, object]) -> FoodRecord:
        """Update a food and return it."""

    def list_all(self) -> list[FoodRecord]:
        """Return every catalog food."""

    def delete_by_name(self, name: str) -> None:
        """Delete the food with the given name."""


@dataclass
class FoodCatalogService:
    """Lookup and CRUD over catalog foods with a local name snapshot."""

    repository: FoodRepository
    cache: Cache
    _snapshot: dict[str, FoodRecord] = field(default_factory=dict, init=False)

    def find_by_name(self, name: str) -> FoodRecord | None:
        """Return a food by case-insensitive exact name."""
        cleaned = name.strip()
        if not cleaned:
            return None
        food = self.repository.find_by_name(cleaned)
        if food is not None:
            self._snapshot[food.name.lower()] = food
        return food

    def create(self, data: dict[str, object]) -> FoodRecord:
        """Create a food, raising ``DuplicateName`` if the name exists."""
        payload = normalize_food_payload(data)
        if self.repository.find_by_name(str(payload["name"])) is not None:
            raise DuplicateName(str(payload["name"]))
        food = self.repository.insert(payload)
        self._snapshot[food.name.lower()] = food
        self.cache.invalidate(FOOD_DATABASE_KEY)
        return food

    def update(self, food_id: int, patch: dict[str, object]) -> FoodRecord:
        """Apply an explicit edit to a food."""
        payload = normalize_food_payload(patch, partial=True)
        food = self.repository.update(food_id, payload)
        self._snapshot = {
            key: value for key, value in self._snapshot.items() if value.id != food_id
        }
        self._snapshot[food.name.lower()] = food
        self.cache.invalidate(FOOD_DATABASE_KEY)
        return food

    def list_foods(self) -> list[FoodRecord]:
        """Return all foods, served from the query cache when fresh."""
        cached = self.cache.get(FOOD_DATABASE_KEY)
        if cached is not None:
            return _FOODS.validate_python(cached)
        foods = self.repository.list_all()
        self.cache.set(FOOD_DATABASE_KEY, _FOODS.dump_python(foods, mode="json"))
        return foods

    def delete(self, name: str) -> None:
        """Delete a food by name."""
        self.repository.delete_by_name(name)
        self._snapshot.pop(name.strip().lower(), None)
        self.cache.invalidate(FOOD_DATABASE_KEY)

    def refresh_snapshot(self) -> int:
        """Reload the local name snapshot from the store."""
        self.cache.invalidate(FOOD_DATABASE_KEY)
        foods = self.list_foods()
        self._snapshot = {food.name.lower(): food for food in foods}
        _logger.info("Catalog snapshot refreshed: %s foods", len(foods))
        return len(foods)

    def search(self, query: str, limit: int = 10) -> list[str]:
        """Return snapshot names containing the query, case-insensitively."""
        if limit < 1:
            raise ValidationRejected("limit", limit)
        needle = query.strip().lower()
        if not needle:
            return []
        matches = [
            food.name for key, food in self._snapshot.items() if needle in key
        ]
        matches.sort(key=lambda name: (not name.lower().startswith(needle), name))
        return matches[:limit]


def normalize_food_payload(
    data: dict[str, object], *, partial: bool = False
) -> dict[str, object]:
    """Validate and coerce a food payload."""
    payload: dict[str, object] = {}
    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationRejected("name", data.get("name"))
        payload["name"] = name
    for key in _NUMERIC_FIELDS:
        if key not in data:
            if not partial:
                payload[key] = 1.0 if key == "serving_size" else 0.0
            continue
        value = data[key]
        if value is None:
            value = 0.0
        if isinstance(value, bool) or not isinstance(value, int | float | str):
            raise ValidationRejected(key, value)
        try:
            number = float(value)
        except ValueError as exc:
            raise ValidationRejected(key, value) from exc
        if number < 0:
            raise ValidationRejected(key, value)
        payload[key] = number
    if "unit" in data or not partial:
        payload["unit"] = str(data.get("unit") or "serving").strip() or "serving"
    return payload
