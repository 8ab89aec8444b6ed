"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import httpx
import pytest
from postgrest.exceptions import APIError

from macro_tracker.adapters.supabase_daily_log_repository import (
    SupabaseDailyLogRepository,
)
from macro_tracker.adapters.supabase_errors import escape_like
from macro_tracker.adapters.supabase_food_repository import SupabaseFoodRepository
from macro_tracker.adapters.supabase_template_repository import (
    SupabaseTemplateRepository,
)
from macro_tracker.adapters.supabase_usage_repository import SupabaseUsageRepository
from macro_tracker.domain.errors import DuplicateName, PersistenceFailed
from macro_tracker.domain.foods import MealType
from macro_tracker.domain.templates import TemplateFood
from macro_tracker.domain.usage import UsageRecord

FOOD_ROW = {
    "id": 7,
    "name": "Eggs",
    "protein": 12,
    "carbs": 1.1,
    "fat": 10,
    "calories": 140,
    "serving_size": 1,
    "unit": "weight",
}


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": [], "delete": []}
    )
    errors: dict[str, Exception] = field(default_factory=dict)
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def ilike(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        self.actions.append(action)
        if action in self.errors:
            raise self.errors.pop(action)
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeRpc:
    client: "FakeSupabaseClient"

    def execute(self) -> FakeResponse:
        if self.client.rpc_error is not None:
            raise self.client.rpc_error
        return FakeResponse(data=[])


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_calls: list[str] = field(default_factory=list)
    rpc_error: Exception | None = None

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, _params: dict[str, object]) -> FakeRpc:
        self.rpc_calls.append(name)
        return FakeRpc(self)


def test_food_repository_find_escapes_wildcards() -> None:
    client = FakeSupabaseClient()
    foods = client.table("foods")
    foods.queue("select", [FOOD_ROW])

    repository = SupabaseFoodRepository(client)
    food = repository.find_by_name("100%_eggs")

    assert food is not None
    assert food.protein_g == 12
    assert food.unit == "weight"
    assert foods.last_filters == [("name", "100\\%\\_eggs")]


def test_food_repository_insert_maps_columns() -> None:
    client = FakeSupabaseClient()
    foods = client.table("foods")
    foods.queue("insert", [FOOD_ROW])

    created = SupabaseFoodRepository(client).insert(
        {
            "name": "Eggs",
            "protein_g": 12.0,
            "carbs_g": 1.1,
            "fat_g": 10.0,
            "calories": 140.0,
            "serving_size": 1.0,
            "unit": "weight",
        }
    )

    assert created.id == 7
    assert foods.last_payload == {
        "name": "Eggs",
        "protein": 12.0,
        "carbs": 1.1,
        "fat": 10.0,
        "calories": 140.0,
        "serving_size": 1.0,
        "unit": "weight",
    }


def test_unique_violation_becomes_duplicate_name() -> None:
    client = FakeSupabaseClient()
    client.table("foods").errors["insert"] = APIError(
        {"code": "23505", "message": "duplicate key value"}
    )

    with pytest.raises(DuplicateName):
        SupabaseFoodRepository(client).insert({"name": "Eggs"})


def test_other_store_errors_become_persistence_failed() -> None:
    client = FakeSupabaseClient()
    foods = client.table("foods")
    foods.errors["insert"] = APIError({"code": "42501", "message": "denied"})
    foods.errors["select"] = httpx.ConnectError("offline")

    repository = SupabaseFoodRepository(client)
    with pytest.raises(PersistenceFailed):
        repository.insert({"name": "Eggs"})
    with pytest.raises(PersistenceFailed):
        repository.list_all()


def test_empty_insert_response_is_a_failure() -> None:
    client = FakeSupabaseClient()

    with pytest.raises(PersistenceFailed):
        SupabaseFoodRepository(client).insert({"name": "Eggs"})


def test_daily_log_repository_joins_foods() -> None:
    client = FakeSupabaseClient()
    table = client.table("dailydiet")
    table.queue(
        "insert",
        [{"id": 1, "date": "2024-03-15", "food_id": 7, "quantity": 2, "meal_type": "Lunch"}],
    )
    table.queue(
        "select",
        [
            {
                "id": 1,
                "date": "2024-03-15",
                "food_id": 7,
                "quantity": 2,
                "meal_type": "Brunch",
                "foods": FOOD_ROW,
            },
            {"id": 2, "date": "2024-03-15", "food_id": 8, "quantity": None, "foods": None},
        ],
    )

    repository = SupabaseDailyLogRepository(client)
    entry = repository.insert(date(2024, 3, 15), 7, 2.0, MealType.LUNCH)
    logged = repository.list_by_day(date(2024, 3, 15))

    assert entry.meal_type == MealType.LUNCH
    assert table.last_filters[-1] == ("date", "2024-03-15")
    [item] = logged
    assert item.food.name == "Eggs"
    assert item.entry.meal_type == MealType.SNACKS


def test_usage_repository_upsert_updates_existing_row() -> None:
    client = FakeSupabaseClient()
    table = client.table("frequently_used_foods")
    table.queue("select", [{"id": 3}])
    record = UsageRecord(
        food_id=7,
        name="Eggs",
        default_serving_size=2.0,
        use_count=4,
        last_used_at=datetime(2024, 3, 15, tzinfo=UTC),
    )

    SupabaseUsageRepository(client).upsert(record)

    assert table.actions == ["select", "update"]
    assert table.last_payload == {
        "food_id": 7,
        "food_name": "Eggs",
        "default_serving_size": 2.0,
        "usage_count": 4,
        "last_used_date": "2024-03-15T00:00:00+00:00",
    }


def test_usage_repository_parses_naive_timestamps_as_utc() -> None:
    client = FakeSupabaseClient()
    client.table("frequently_used_foods").queue(
        "select",
        [
            {
                "food_id": 7,
                "food_name": "Eggs",
                "default_serving_size": 1,
                "usage_count": 2,
                "last_used_date": "2024-03-15T08:00:00",
            }
        ],
    )

    [record] = SupabaseUsageRepository(client).list_all()

    assert record.last_used_at.tzinfo is UTC
    assert record.use_count == 2


def test_usage_repository_schema_rpc() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseUsageRepository(client)

    repository.ensure_schema()
    assert client.rpc_calls == ["create_frequently_used_foods_table"]

    client.rpc_error = APIError({"code": "42883", "message": "missing function"})
    with pytest.raises(PersistenceFailed):
        repository.ensure_schema()


def test_template_repository_serializes_foods() -> None:
    client = FakeSupabaseClient()
    table = client.table("meal_templates")
    foods_json = [
        {
            "food_id": 7,
            "name": "Eggs",
            "serving_size": 2,
            "protein": 24,
            "carbs": None,
            "fat": 20,
            "calories": 280,
            "unit": "weight",
        }
    ]
    table.queue(
        "insert",
        [
            {
                "id": 1,
                "name": "Breakfast",
                "description": "",
                "category": "Morning",
                "foods_json": foods_json,
            }
        ],
    )

    created = SupabaseTemplateRepository(client).insert(
        {
            "name": "Breakfast",
            "description": "",
            "category": "Morning",
            "foods": [
                TemplateFood(food_id=7, name="Eggs", serving_size=2, protein=24, fat=20,
                             calories=280, unit="weight")
            ],
        }
    )

    assert created.category == "Morning"
    assert created.foods[0].carbs is None
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["foods_json"][0]["serving_size"] == 2.0
    assert "foods" not in table.last_payload


def test_escape_like_leaves_plain_names() -> None:
    assert escape_like("Peanut Butter") == "Peanut Butter"
