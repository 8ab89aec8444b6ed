"""Frequently used food tracking."""

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, time
from typing import Protocol

from macro_tracker.domain.errors import ValidationRejected
from macro_tracker.domain.foods import DailyLogEntry
from macro_tracker.domain.usage import FrequentFood, UsageRecord
from macro_tracker.services.catalog import FoodCatalogService
from macro_tracker.services.schema import SchemaProvisioner


class UsageRepository(Protocol):
    """Persistence interface for usage records."""

    def get(self, food_id: int) -> UsageRecord | None:
        """Return the usage record for a food, if present."""

    def upsert(self, record: UsageRecord) -> None:
        """Insert or replace the usage record for a food."""

    def list_all(self) -> list[UsageRecord]:
        """Return every usage record."""

    def update_default_serving_size(self, food_id: int, serving_size: float) -> None:
        """Overwrite a food's default serving size."""

    def ensure_schema(self) -> None:
        """Create the backing table if it does not exist."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class UsageTracker:
    """Records logging events and ranks foods for quick re-logging."""

    repository: UsageRepository
    catalog: FoodCatalogService
    half_life_days: float = 14.0
    clock: Callable[[], datetime] = _utcnow
    schema: SchemaProvisioner | None = None

    def track(self, food_id: int, name: str, serving_size: float) -> UsageRecord:
        """Record one successful log of a food."""
        if serving_size < 0:
            raise ValidationRejected("serving_size", serving_size)
        self._ensure_schema()
        now = self.clock()
        current = self.repository.get(food_id)
        if current is None:
            record = UsageRecord(
                food_id=food_id,
                name=name,
                default_serving_size=serving_size,
                use_count=1,
                last_used_at=now,
            )
        else:
            record = replace(
                current,
                name=name,
                default_serving_size=serving_size,
                use_count=current.use_count + 1,
                last_used_at=now,
            )
        self.repository.upsert(record)
        return record

    def get_frequent(self, limit: int = 10) -> list[FrequentFood]:
        """Return foods ranked by combined frequency and recency."""
        if limit < 1:
            raise ValidationRejected("limit", limit)
        self._ensure_schema()
        foods = {food.id: food for food in self.catalog.list_foods()}
        ranked = self.rank(self.repository.list_all())
        result = [
            FrequentFood(food=foods[record.food_id], usage=record)
            for record in ranked
            if record.food_id in foods
        ]
        return result[:limit]

    def default_serving_size(self, food_id: int) -> float:
        """Return the serving size last confirmed for a food, or 1."""
        self._ensure_schema()
        record = self.repository.get(food_id)
        return record.default_serving_size if record else 1.0

    def update_default_serving_size(self, food_id: int, serving_size: float) -> None:
        """Set the serving size offered by default for a food."""
        if serving_size < 0:
            raise ValidationRejected("serving_size", serving_size)
        self._ensure_schema()
        self.repository.update_default_serving_size(food_id, serving_size)

    def rebuild_from_log(self, entries: list[DailyLogEntry]) -> int:
        """Recreate usage records from daily log history."""
        self._ensure_schema()
        names = {food.id: food.name for food in self.catalog.list_foods()}
        latest: dict[int, DailyLogEntry] = {}
        counts: dict[int, int] = {}
        for entry in entries:
            if entry.food_id not in names:
                continue
            counts[entry.food_id] = counts.get(entry.food_id, 0) + 1
            seen = latest.get(entry.food_id)
            if seen is None or (entry.day, entry.id) >= (seen.day, seen.id):
                latest[entry.food_id] = entry
        for food_id, entry in latest.items():
            self.repository.upsert(
                UsageRecord(
                    food_id=food_id,
                    name=names[food_id],
                    default_serving_size=entry.serving_size,
                    use_count=counts[food_id],
                    last_used_at=datetime.combine(entry.day, time.min, tzinfo=UTC),
                )
            )
        return len(latest)

    def rank(self, records: list[UsageRecord]) -> list[UsageRecord]:
        """Rank by decayed use count, most recent use first on ties."""
        now = self.clock()
        return sorted(
            records,
            key=lambda record: (
                usage_score(record, now, self.half_life_days),
                record.last_used_at,
            ),
            reverse=True,
        )

    def _ensure_schema(self) -> None:
        if self.schema is not None:
            self.schema.ensure()


def usage_score(record: UsageRecord, now: datetime, half_life_days: float) -> float:
    """Return the use count decayed by time since last use."""
    age_days = max(0.0, (now - record.last_used_at).total_seconds() / 86400)
    return record.use_count * 0.5 ** (age_days / half_life_days)
